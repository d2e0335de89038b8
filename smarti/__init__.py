"""Smarti.

Backend for the Smarti exam-preparation platform: lessons and practice
quizzes, an admin API, coupon and subscription handling, payment gateway
callbacks, and integrations with Mailgun and Firestore.

Layout
------

- ``smarti.core``: database entities and repositories, domain services,
  integrations, logging and monitoring.
- ``smarti.server``: the FastAPI application exposing everything under ``/api``.
"""

__version__ = "1.0.0"
