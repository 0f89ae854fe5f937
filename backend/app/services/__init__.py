"""Domain services and external integrations.

Importing this package registers every deferred-job handler with
``job_scheduler``.
"""

from app.services.s3 import s3_service
from app.services.text_extractor import text_extractor
from app.services.completion_service import completion_service
from app.services.notifications import notification_service
from app.services.scheduler import job_scheduler
from app.services.auth_service import auth_service
from app.services.file_service import file_service
from app.services.task_service import task_service
from app.services.dashboard_service import dashboard_service
from app.services.settings_service import settings_service
from app.services.study_group_service import study_group_service
from app.services.ai_chat_service import ai_chat_service

__all__ = [
    "s3_service",
    "text_extractor",
    "completion_service",
    "notification_service",
    "job_scheduler",
    "auth_service",
    "file_service",
    "task_service",
    "dashboard_service",
    "settings_service",
    "study_group_service",
    "ai_chat_service",
]
