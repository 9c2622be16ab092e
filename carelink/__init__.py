"""CareLink backend project configuration package."""
