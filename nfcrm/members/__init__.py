"""CRM Members — persistence and member-facing messaging used by the launch import."""
