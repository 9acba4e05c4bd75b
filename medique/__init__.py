"""
Medique Appointment Service

A FastAPI-based medical appointment booking system: patient accounts,
a doctor directory, conflict-free slot booking and cancellation,
payments and email notifications.
"""

__version__ = "1.0.0"
