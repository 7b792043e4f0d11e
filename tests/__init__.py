"""
Test suite for the Hospital Management System.

Contains unit tests for the fee and lifecycle rules and API tests for the
patient, doctor, lab-operator and admin portals.
"""
