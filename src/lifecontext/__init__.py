"""
LifeContext - Onboarding engine for a private journaling and life-archive app.

Packages:
- lifecontext: settings, key-value storage, logging, CLI and web app
- onboarding: step flow, draft persistence, A/B variant, funnel analytics
"""

__version__ = "0.4.0"
