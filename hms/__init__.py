"""
Hospital Management System

A FastAPI-based backend for a hospital: appointments with fee calculation,
lab test bookings and their lifecycle, and the patient, doctor,
lab-operator and admin portals.
"""

__version__ = "1.0.0"
