"""
Report routes — users flag posts for moderation.
"""
from flask import Blueprint, jsonify

from sponsorlink.routes.context import current_identity, json_body
from sponsorlink.services.reports import submit_report

bp = Blueprint('reports', __name__)


@bp.route('/api/report', methods=['POST'])
def report_post():
    data = json_body()
    report = submit_report(data.get('postId', data.get('userId')), data.get('reason'), reporter=current_identity())
    return jsonify({
        'success': True,
        'reportId': report.id,
        'message': 'Report submitted successfully. Our team will review it.',
    })
