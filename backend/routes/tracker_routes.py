"""
API routes for the tracked working set and its positions.
"""
from flask import Blueprint, current_app, jsonify, request

from models import Observer
from utils.response_util import error_response

tracker_bp = Blueprint('tracker', __name__, url_prefix='/api')


def _tracker():
    return current_app.extensions['tracker']


def _observer_from_args():
    """
    Observer from the lat/lon query parameters.

    Returns:
        Observer, or None if the coordinates are missing or not numbers

    Raises:
        ValueError: if the coordinates are out of range
    """
    return Observer.from_query(request.args.get('lat'), request.args.get('lon'))


@tracker_bp.route('/satellites', methods=['GET'])
def refresh_satellites():
    """
    Refresh the working set from the upstream catalog for an observer.

    Query parameters:
    - lat: Observer latitude in degrees (required)
    - lon: Observer longitude in degrees (required)
    - force: Bypass the upstream rate limit (default: false)
    """
    try:
        observer = _observer_from_args()
    except ValueError as e:
        return error_response(str(e), 400)
    if observer is None:
        return error_response('Latitude and longitude are required', 400)

    force = request.args.get('force', 'false').lower() == 'true'
    tracker = _tracker()
    result = tracker.refresh(observer, force=force)

    data = result.to_dict()
    data['overhead_count'] = tracker.overhead_count(result.positions)
    return jsonify(data)


@tracker_bp.route('/positions', methods=['GET'])
def get_positions():
    """
    Get the current positions of the working set.

    Query parameters:
    - lat: Observer latitude in degrees
    - lon: Observer longitude in degrees
    - sort: 'distance' to order by distance from the observer
    - refresh: Refresh from upstream before answering (default: false)

    Without observer coordinates the position list is empty.
    """
    try:
        observer = _observer_from_args()
    except ValueError as e:
        return error_response(str(e), 400)
    if observer is None:
        return jsonify({'positions': []})

    sort_by_distance = request.args.get('sort', '').lower() == 'distance'
    refresh = request.args.get('refresh', 'false').lower() == 'true'

    tracker = _tracker()
    samples = tracker.positions(observer, sort_by_distance=sort_by_distance, refresh=refresh)

    return jsonify({
        'count': len(samples),
        'overhead_count': tracker.overhead_count(samples),
        'positions': [sample.to_dict() for sample in samples],
    })


@tracker_bp.route('/selection', methods=['GET'])
def get_selection():
    """
    Get the persisted working set in display order.
    """
    entries = _tracker().selection()
    return jsonify({
        'count': len(entries),
        'target_count': _tracker().store.target_count,
        'satellites': [entry.to_dict() for entry in entries],
    })
