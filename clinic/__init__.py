"""Clinic application for the CareLink backend.

This package contains the profile store, identity synchronisation,
access gate, record models, serializers, views and route registrations
behind the patient, doctor and staff portals.
"""
