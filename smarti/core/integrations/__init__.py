"""Clients for services outside the database: Mailgun email and Firestore."""
