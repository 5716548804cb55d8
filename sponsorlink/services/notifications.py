"""
Notifications — Slack webhook alerts for operators.

Notification failure never blocks the request that triggered it.
"""
import logging

import requests

from sponsorlink.config import SLACK_WEBHOOK_URL

logger = logging.getLogger('services.notifications')


def _post_blocks(blocks):
    requests.post(SLACK_WEBHOOK_URL, json={'blocks': blocks}, timeout=10)


def notify_report_submitted(report, post):
    """Alert moderators that a post was reported."""
    if not SLACK_WEBHOOK_URL:
        return

    try:
        blocks = [
            {
                'type': 'header',
                'text': {'type': 'plain_text', 'text': f'Post #{post.id} reported'},
            },
            {
                'type': 'section',
                'fields': [
                    {'type': 'mrkdwn', 'text': f'*Type:* {post.role}'},
                    {'type': 'mrkdwn', 'text': f'*Platform:* {post.platform}'},
                    {'type': 'mrkdwn', 'text': f'*Owner:* {post.owner_email}'},
                    {'type': 'mrkdwn', 'text': f'*Reporter:* {report.reporter_email or "anonymous"}'},
                ],
            },
            {
                'type': 'section',
                'text': {'type': 'mrkdwn', 'text': f'*Reason:* ```{report.reason[:500]}```'},
            },
        ]
        _post_blocks(blocks)
        logger.info("Report %s notification sent", report.id)
    except Exception:
        logger.error("Failed to send notification for report %s", report.id, exc_info=True)


def notify_payment_fulfilled(purpose, email, amount, target_post_id=None):
    """Post a one-line revenue event to Slack."""
    if not SLACK_WEBHOOK_URL:
        return

    try:
        label = 'Posting fee' if purpose == 'posting_fee' else f'Contact reveal for post #{target_post_id}'
        blocks = [
            {
                'type': 'section',
                'text': {'type': 'mrkdwn', 'text': f'*{label}* paid by {email}'},
            },
            {
                'type': 'context',
                'elements': [{'type': 'mrkdwn', 'text': f'Amount: ${(amount or 0) / 100:.2f}'}],
            },
        ]
        _post_blocks(blocks)
        logger.info("Payment notification sent for %s (%s)", email, purpose)
    except Exception:
        logger.error("Failed to send payment notification for %s", email, exc_info=True)
