"""
User reports against posts.
"""
import logging

from sponsorlink.errors import NotFoundError, ValidationError
from sponsorlink.models.user_report import UserReport
from sponsorlink.services import notifications
from sponsorlink.services.stores import PostStore, storage_session

logger = logging.getLogger('services.reports')

MAX_REASON_LENGTH = 1000


def submit_report(post_id, reason, reporter=None, posts=None):
    posts = posts or PostStore()
    if post_id in (None, ''):
        raise ValidationError('Post ID and reason are required')
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError('Post ID and reason are required')
    try:
        post_id = int(post_id)
    except (TypeError, ValueError):
        raise ValidationError('Post ID must be an integer')

    post = posts.get(post_id)
    if post is None:
        raise NotFoundError('Post not found')

    with storage_session('reports.submit') as session:
        report = UserReport(
            reported_post_id=post.id,
            reporter_email=reporter.email if reporter else None,
            reason=reason[:MAX_REASON_LENGTH],
            status='pending',
        )
        session.add(report)
        session.commit()

    logger.info("Report %s filed against post %s", report.id, post.id)
    notifications.notify_report_submitted(report, post)
    return report
