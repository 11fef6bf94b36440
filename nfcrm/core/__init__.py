"""NF Mentoring CRM core platform.

Shared infrastructure used by the CRM sections:
- Repository base class on top of the PostgreSQL pool
- SMTP email delivery
- Structured logging
"""
