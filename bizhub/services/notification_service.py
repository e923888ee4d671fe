"""
Helpdesk email notifications.

Requesters get an email when their ticket is opened and whenever a public
reply is added. Context is captured as plain dicts while the request
session is open so delivery can run as a background task.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from bizhub.db import models
from bizhub.utils.runtime import env_flag

logger = logging.getLogger(__name__)

TEMPLATE_TICKET_CREATED = 'ticket_created'
TEMPLATE_TICKET_REPLY = 'ticket_reply'


def notifications_enabled() -> bool:
    return env_flag('HELPDESK_EMAIL_NOTIFICATIONS')


def ticket_context(ticket: models.Ticket, message: Optional[models.TicketMessage] = None) -> Dict[str, Any]:
    context = {
        'number': ticket.number,
        'subject': ticket.subject,
        'description': ticket.description,
        'status': ticket.status,
        'priority': ticket.priority,
        'requester_name': ticket.requester_name,
        'requester_email': ticket.requester_email,
        'department_name': ticket.department.name if ticket.department else None,
        'department_email': ticket.department.email if ticket.department else None,
    }
    if message is not None:
        context['reply'] = {
            'content': message.content,
            'content_type': message.content_type,
            'sender_name': message.sender_name,
        }
    return context


class HelpdeskNotifier:
    def __init__(self, email_service=None):
        if email_service is None:
            from bizhub.services.email_service import get_email_service
            email_service = get_email_service()
        self.email_service = email_service

    def _send(self, template: str, subject: str, context: Dict[str, Any]) -> Dict[str, Any]:
        if not context.get('requester_email'):
            return {'success': False, 'error': 'No requester email'}
        html_content, text_content = self.email_service.render_template(template, context)
        result = asyncio.run(self.email_service.send_email(
            to_email=context['requester_email'],
            subject=subject,
            html_content=html_content,
            text_content=text_content,
            reply_to=context.get('department_email'),
        ))
        if result.get('success'):
            logger.info("helpdesk_email_sent template=%s ticket=%s", template, context.get('number'))
        else:
            logger.warning(
                "helpdesk_email_failed template=%s ticket=%s error=%s",
                template, context.get('number'), result.get('error'),
            )
        return result

    def notify_ticket_created(self, context: Dict[str, Any]) -> Dict[str, Any]:
        return self._send(
            TEMPLATE_TICKET_CREATED,
            f"[Ticket #{context['number']}] {context['subject']}",
            context,
        )

    def notify_ticket_reply(self, context: Dict[str, Any]) -> Dict[str, Any]:
        return self._send(
            TEMPLATE_TICKET_REPLY,
            f"Re: [Ticket #{context['number']}] {context['subject']}",
            context,
        )


def send_ticket_created(context: Dict[str, Any]) -> None:
    """Background-task entry point; never raises."""
    try:
        HelpdeskNotifier().notify_ticket_created(context)
    except Exception:
        logger.exception("helpdesk notification failed for ticket %s", context.get('number'))


def send_ticket_reply(context: Dict[str, Any]) -> None:
    try:
        HelpdeskNotifier().notify_ticket_reply(context)
    except Exception:
        logger.exception("helpdesk reply notification failed for ticket %s", context.get('number'))
