"""External integration clients.

All clients implement ``BaseIntegration``; SendGrid runs in log-only mock
mode when its API key starts with ``mock_``.
"""

from partnerhub.integrations.base import BaseIntegration
from partnerhub.integrations.sendgrid import EmailClient

__all__ = [
    "BaseIntegration",
    "EmailClient",
]
