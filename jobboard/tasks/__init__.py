"""
Celery tasks package.

Tasks are organized by domain:
- email_tasks: account emails sent outside the request cycle
"""

from jobboard.tasks import email_tasks

__all__ = ["email_tasks"]
