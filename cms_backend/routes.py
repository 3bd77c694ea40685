"""
HTTP routes for the content backend API.

Every managed page gets the same pair of endpoints:

    GET  /<page_name>                  -> {"ok": true, "<responseKey>": row | null}
    POST /<page_name>/update-section   -> {"ok": true, "<responseKey>": row}
"""

from __future__ import annotations

import logging
import re

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from cms_backend.content import PageContentService
from cms_backend.db import DbClient
from cms_backend.dependencies import (
    get_change_feed,
    get_db_client,
    get_env_config,
    get_mailer,
)
from cms_backend.env import EMAIL_FIELDS, EnvConfig
from cms_backend.mailer import Mailer, build_message, describe_send_error
from cms_backend.pages import PAGES, PageDefinition
from cms_backend.realtime import ChangeFeed
from cms_backend.schemas import SendEmailRequest, UpdateSectionRequest

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_SUBJECT = "Website form submission"


def _error(status_code: int, message: str, error: str | None = None) -> JSONResponse:
    content: dict = {"ok": False, "message": message}
    if error is not None:
        content["error"] = error
    return JSONResponse(status_code=status_code, content=content)


def _route_name(page: PageDefinition) -> str:
    return re.sub(r"[^a-z0-9]+", "_", page.page_name)


def register_page_routes(target: APIRouter, page: PageDefinition) -> None:
    """Attach the GET/update-section pair for one page."""

    def get_content(
        db: DbClient = Depends(get_db_client),
        feed: ChangeFeed = Depends(get_change_feed),
    ):
        try:
            content = PageContentService(page, db, feed).get_content()
            return {
                "ok": True,
                page.response_key: content.as_dict() if content else None,
            }
        except Exception as exc:
            logger.exception("[%s API] Error", page.label)
            return _error(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                f"Failed to fetch {page.label} content",
                str(exc),
            )

    def update_section(
        payload: UpdateSectionRequest,
        db: DbClient = Depends(get_db_client),
        feed: ChangeFeed = Depends(get_change_feed),
    ):
        try:
            if not payload.section_key:
                return _error(status.HTTP_400_BAD_REQUEST, "Missing sectionKey")

            result = PageContentService(page, db, feed).update_section(
                payload.section_key, payload.section_data
            )
            if not result.success:
                return _error(
                    status.HTTP_500_INTERNAL_SERVER_ERROR,
                    result.error or "Failed to update",
                )
            return {"ok": True, page.response_key: result.data.as_dict()}
        except Exception as exc:
            logger.exception("[%s/update-section] Exception", page.page_name)
            return _error(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                f"Failed to update {page.label} section",
                str(exc),
            )

    name = _route_name(page)
    target.add_api_route(
        f"/{page.page_name}",
        get_content,
        methods=["GET"],
        name=f"get_{name}_content",
    )
    target.add_api_route(
        f"/{page.page_name}/update-section",
        update_section,
        methods=["POST"],
        name=f"update_{name}_section",
    )


for _page in PAGES:
    register_page_routes(router, _page)


@router.post("/send-email")
async def send_email(
    payload: SendEmailRequest,
    env: EnvConfig = Depends(get_env_config),
    mailer: Mailer | None = Depends(get_mailer),
):
    """
    Send one website form submission to the configured inbox.
    """
    if mailer is None:
        missing = list(env.missing_email_fields) or [name for name, _ in EMAIL_FIELDS]
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "SMTP not configured on server",
                "missing": missing,
                "message": f"Missing required environment variables: {', '.join(missing)}",
            },
        )

    try:
        try:
            await mailer.verify()
            logger.info("SMTP connection verified successfully")
        except Exception as exc:
            logger.error("SMTP verification failed: %s", exc)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "SMTP connection failed",
                    "details": str(exc) or exc.__class__.__name__,
                    "message": "Unable to connect to SMTP server. Please check your SMTP configuration.",
                },
            )

        email = env.email
        subject = payload.subject or DEFAULT_SUBJECT + (
            f" — {payload.form_name}" if payload.form_name else ""
        )
        message = build_message(
            sender=payload.from_ or (email.sender if email else ""),
            recipient=payload.to or (email.recipient if email else ""),
            subject=subject,
            text=payload.text,
            html=payload.html,
        )

        if email:
            logger.debug("SMTP host=%s port=%s user=%s", email.smtp_host, email.smtp_port, email.smtp_user)
        logger.debug(
            "Sending email to=%s from=%s subject=%r has_text=%s has_html=%s",
            message["To"],
            message["From"],
            subject,
            bool(payload.text),
            bool(payload.html),
        )

        info = await mailer.send(message)
        logger.info("Email sent successfully: %s", info.message_id)
        return {"ok": True, "info": info.as_dict()}
    except Exception as exc:
        logger.exception("Error sending email")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=describe_send_error(exc),
        )
