"""
Sample case studies for a fresh install.
"""

from __future__ import annotations

import logging

from portfolio.db import DbClient
from portfolio.records import UserUpsert

logger = logging.getLogger(__name__)

SAMPLE_AUTHOR_ID = "mock-user-123"

SAMPLE_PROJECTS: list[dict] = [
    {
        "title": "Modern E-commerce Platform",
        "slug": "modern-ecommerce-platform",
        "description": (
            "A full-stack e-commerce solution built with React, Node.js, and "
            "PostgreSQL featuring real-time inventory management, secure payment "
            "processing, and an intuitive admin dashboard."
        ),
        "content": """# Modern E-commerce Platform

A comprehensive e-commerce solution designed for modern retail businesses.

## Key Features

- **Real-time Inventory Management**: Live stock tracking with automated low-stock alerts
- **Secure Payment Processing**: Stripe integration for safe and reliable transactions
- **Admin Dashboard**: Analytics and product management tools

## Results

A 40% increase in conversion rates and a 60% reduction in cart abandonment
compared to the previous solution.""",
        "featured_image": "/uploads/ecommerce-preview.svg",
        "category": "Full-Stack Development",
        "tags": ["React", "Node.js", "PostgreSQL", "Stripe", "E-commerce"],
        "status": "published",
    },
    {
        "title": "Real-Time Analytics Dashboard",
        "slug": "realtime-analytics-dashboard",
        "description": (
            "Interactive data visualization platform for business intelligence, "
            "featuring real-time metrics, customizable charts, and automated "
            "reporting capabilities."
        ),
        "content": """# Real-Time Analytics Dashboard

A business intelligence platform that turns raw data into actionable insights
through interactive visualizations and real-time monitoring.

## Core Capabilities

- **Real-time Data Processing**: WebSocket connections for live updates
- **Customizable Dashboards**: Drag-and-drop interface for personalized views
- **Automated Reports**: Scheduled PDF reports via email

## Impact

Report generation went from hours to seconds, saving 20+ hours per week of
manual reporting.""",
        "featured_image": "/uploads/dashboard-preview.svg",
        "category": "Data Visualization",
        "tags": ["React", "D3.js", "Python", "Analytics", "Real-time"],
        "status": "published",
    },
    {
        "title": "Secure Mobile Banking Application",
        "slug": "secure-mobile-banking-app",
        "description": (
            "Cross-platform mobile banking app with biometric authentication, "
            "real-time transaction monitoring, and advanced security features "
            "for seamless financial management."
        ),
        "content": """# Secure Mobile Banking Application

A mobile banking app for a mid-sized credit union that meets strict regulatory
requirements without sacrificing user experience.

## Security Features

- **Biometric Authentication**: Fingerprint and facial recognition
- **End-to-end Encryption**: Data encrypted in transit and at rest
- **Fraud Detection**: Real-time transaction monitoring

## Achievements

A 4.8-star store rating, 95% adoption within six months, and zero security
incidents since launch.""",
        "featured_image": "/uploads/banking-app-preview.svg",
        "category": "Mobile Development",
        "tags": ["React Native", "Security", "FinTech", "Mobile", "AWS"],
        "status": "published",
    },
]


def seed_sample_projects(db: DbClient, author_id: str | None = SAMPLE_AUTHOR_ID) -> int:
    """Create any sample project whose slug is not taken yet. Returns the count created."""
    if author_id and db.get_user(author_id) is None:
        db.upsert_user(UserUpsert(id=author_id))
    created = 0
    for sample in SAMPLE_PROJECTS:
        if db.get_project_by_slug(sample["slug"]):
            continue
        data = dict(sample, author_id=author_id) if author_id else dict(sample)
        db.create_project(data)
        created += 1
    logger.info("Seeded %d sample projects", created)
    return created
