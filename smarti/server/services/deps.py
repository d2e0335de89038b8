"""
API Dependencies.

Annotated aliases for the dependencies shared by the routers.
"""

from typing import Annotated, Optional

from fastapi import Cookie, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from smarti.core.database.session import get_session
from smarti.core.integrations.firestore import DocumentStore
from smarti.core.integrations.mailgun import MailgunClient
from smarti.server.core import constant
from smarti.server.core.config import settings

from .auth import get_current_user_id, require_admin, require_user


def get_mailer() -> MailgunClient:
    return MailgunClient.from_config(settings.mailgun)


def get_document_store() -> Optional[DocumentStore]:
    """Firestore store, or None when no service account is configured."""
    firebase = settings.firebase
    if not firebase.project_id or not firebase.private_key:
        return None
    return DocumentStore(firebase)


SessionDep = Annotated[AsyncSession, Depends(get_session)]
OptionalUserDep = Annotated[Optional[str], Depends(get_current_user_id)]
CurrentUserDep = Annotated[str, Depends(require_user)]
AdminDep = Annotated[str, Depends(require_admin)]
MailerDep = Annotated[MailgunClient, Depends(get_mailer)]
DocumentStoreDep = Annotated[Optional[DocumentStore], Depends(get_document_store)]
SystemStepCookie = Annotated[Optional[str], Cookie(alias=constant.SYSTEM_STEP_COOKIE)]
