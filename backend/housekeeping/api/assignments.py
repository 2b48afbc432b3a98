"""
Assignments API Blueprint

Flask routes for the housekeeping workflow:
- GET  /api/v1/queue - Prioritized work queue for a worker and date
- GET  /api/v1/assignments/<id> - Single assignment
- POST /api/v1/assignments/<id>/start - assigned -> in_progress
- POST /api/v1/assignments/<id>/complete - in_progress -> completed
- POST /api/v1/assignments/<id>/cancel - Administrative cancel
- POST /api/v1/assignments/<id>/dnd - Mark Do-Not-Disturb (with evidence)
- POST /api/v1/assignments/<id>/dnd/retrieve - Reopen a DND room
- POST /api/v1/assignments/<id>/photos - Attach completion photo refs
- POST /api/v1/assignments/<id>/ready - Checkout room is vacated
- POST /api/v1/assignments/<id>/notes - Append a note
- POST /api/v1/assignments/<id>/review - Supervisor approve/reject

Policy rejections are 409 with a reason and an actionable message;
acting on someone else's assignment or a manager-only action is 403.
Store failures are 500 with a generic retry message.
"""

from flask import Blueprint, request, jsonify, g
from functools import wraps
from datetime import date
import traceback

from housekeeping.config import config
from housekeeping.guards import RejectionReason
from housekeeping.services import (
    AssignmentRepository,
    AssignmentStateMachine,
    QueueView,
    SupervisorApprovalService,
    WorkQueueService,
    get_auth_service,
)
from housekeeping.services.transition import as_uuid, same_user

assignments_bp = Blueprint("assignments", __name__, url_prefix="/api/v1")

GENERIC_FAILURE = "Failed to update assignment, please try again"
FORBIDDEN_REASONS = (RejectionReason.NOT_ASSIGNEE, RejectionReason.NOT_AUTHORIZED)


def require_auth(f):
    """Decorator to require a bearer token; sets g.actor."""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return jsonify({"ok": False, "error": "Missing or invalid Authorization header"}), 401

        token = auth_header[7:]  # Remove 'Bearer ' prefix
        actor = get_auth_service().get_actor_from_token(token)
        if not actor:
            return jsonify({"ok": False, "error": "Invalid or expired token"}), 401

        g.actor = actor
        return f(*args, **kwargs)
    return decorated


def get_state_machine() -> AssignmentStateMachine:
    return AssignmentStateMachine()


def get_approval_service() -> SupervisorApprovalService:
    return SupervisorApprovalService()


def get_work_queue_service() -> WorkQueueService:
    return WorkQueueService()


def _respond(result):
    if result.ok:
        return jsonify(result.to_dict())
    if result.reason == RejectionReason.NOT_FOUND:
        status = 404
    elif result.reason in FORBIDDEN_REASONS:
        status = 403
    else:
        status = 409
    return jsonify(result.to_dict()), status


def _failure(action: str, assignment_id, e: Exception):
    print(f"[Assignments API] {action} failed for {assignment_id}: {e}")
    traceback.print_exc()
    return jsonify({"ok": False, "error": GENERIC_FAILURE}), 500


def _photo_refs(data, key):
    refs = data.get(key)
    if not isinstance(refs, list) or not all(isinstance(r, str) for r in refs):
        return None
    return refs


# =============================================================================
# GET /api/v1/queue
# =============================================================================

@assignments_bp.route("/queue", methods=["GET"])
@require_auth
def get_queue():
    """
    Prioritized work queue.

    Query params:
        date: YYYY-MM-DD (default today)
        view: standard | compact (default standard)
        include_completed: 1 to keep completed rows in the compact view
        user_id: another worker's queue (managers only)
    """
    actor = g.actor

    try:
        work_date = date.fromisoformat(request.args["date"]) if request.args.get("date") else date.today()
    except ValueError:
        return jsonify({"ok": False, "error": "Invalid date, expected YYYY-MM-DD"}), 400

    try:
        view = QueueView(request.args.get("view", QueueView.STANDARD.value))
    except ValueError:
        return jsonify({"ok": False, "error": "Invalid view. Must be 'standard' or 'compact'"}), 400

    worker_id = actor.user_id
    if request.args.get("user_id"):
        worker_id = as_uuid(request.args["user_id"])
        if worker_id is None:
            return jsonify({"ok": False, "error": "Invalid user_id"}), 400
        if not same_user(worker_id, actor.user_id) and not actor.has_role(config.MANAGER_ROLES):
            return jsonify({
                "ok": False,
                "reason": RejectionReason.NOT_AUTHORIZED.value,
                "error": "Only a manager can view another worker's queue",
            }), 403

    include_completed = request.args.get("include_completed") in ("1", "true")

    try:
        queue = get_work_queue_service().get_queue(worker_id, work_date, view, include_completed)
        return jsonify({
            "ok": True,
            "user_id": str(worker_id),
            "date": work_date.isoformat(),
            "view": view.value,
            "assignments": [a.to_dict() for a in queue],
        })
    except Exception as e:
        print(f"[Assignments API] Queue read failed: {e}")
        traceback.print_exc()
        return jsonify({"ok": False, "error": "Failed to load work queue, please try again"}), 500


# =============================================================================
# GET /api/v1/assignments/<id>
# =============================================================================

@assignments_bp.route("/assignments/<assignment_id>", methods=["GET"])
@require_auth
def get_assignment(assignment_id):
    key = as_uuid(assignment_id)
    try:
        assignment = AssignmentRepository().get_assignment(key) if key else None
    except Exception as e:
        return _failure("read", assignment_id, e)

    if assignment is None:
        return jsonify({"ok": False, "reason": RejectionReason.NOT_FOUND.value, "error": "Assignment not found"}), 404
    return jsonify({"ok": True, "assignment": assignment.to_dict()})


# =============================================================================
# Transitions
# =============================================================================

@assignments_bp.route("/assignments/<assignment_id>/start", methods=["POST"])
@require_auth
def start_assignment(assignment_id):
    try:
        return _respond(get_state_machine().start(g.actor, assignment_id))
    except Exception as e:
        return _failure("start", assignment_id, e)


@assignments_bp.route("/assignments/<assignment_id>/complete", methods=["POST"])
@require_auth
def complete_assignment(assignment_id):
    try:
        return _respond(get_state_machine().complete(g.actor, assignment_id))
    except Exception as e:
        return _failure("complete", assignment_id, e)


@assignments_bp.route("/assignments/<assignment_id>/cancel", methods=["POST"])
@require_auth
def cancel_assignment(assignment_id):
    try:
        return _respond(get_state_machine().cancel(g.actor, assignment_id))
    except Exception as e:
        return _failure("cancel", assignment_id, e)


@assignments_bp.route("/assignments/<assignment_id>/dnd", methods=["POST"])
@require_auth
def mark_dnd(assignment_id):
    """
    Body:
        evidence: list of photo references of the DND sign
    """
    data = request.get_json(silent=True) or {}
    evidence = _photo_refs(data, "evidence") if "evidence" in data else []
    if evidence is None:
        return jsonify({"ok": False, "error": "evidence must be a list of photo references"}), 400

    try:
        return _respond(get_state_machine().mark_dnd(g.actor, assignment_id, evidence))
    except Exception as e:
        return _failure("mark_dnd", assignment_id, e)


@assignments_bp.route("/assignments/<assignment_id>/dnd/retrieve", methods=["POST"])
@require_auth
def retrieve_dnd(assignment_id):
    try:
        return _respond(get_state_machine().retrieve_dnd(g.actor, assignment_id))
    except Exception as e:
        return _failure("retrieve_dnd", assignment_id, e)


@assignments_bp.route("/assignments/<assignment_id>/photos", methods=["POST"])
@require_auth
def add_photos(assignment_id):
    """
    Body:
        photos: list of photo references from the capture flow
    """
    data = request.get_json(silent=True) or {}
    photos = _photo_refs(data, "photos")
    if photos is None:
        return jsonify({"ok": False, "error": "photos must be a list of photo references"}), 400

    try:
        return _respond(get_state_machine().add_completion_photos(g.actor, assignment_id, photos))
    except Exception as e:
        return _failure("add_photos", assignment_id, e)


@assignments_bp.route("/assignments/<assignment_id>/ready", methods=["POST"])
@require_auth
def mark_ready(assignment_id):
    try:
        return _respond(get_state_machine().mark_ready_to_clean(g.actor, assignment_id))
    except Exception as e:
        return _failure("mark_ready_to_clean", assignment_id, e)


@assignments_bp.route("/assignments/<assignment_id>/notes", methods=["POST"])
@require_auth
def append_note(assignment_id):
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        return jsonify({"ok": False, "error": "Note text is required"}), 400

    try:
        return _respond(get_state_machine().append_note(g.actor, assignment_id, text))
    except Exception as e:
        return _failure("append_note", assignment_id, e)


@assignments_bp.route("/assignments/<assignment_id>/review", methods=["POST"])
@require_auth
def review_assignment(assignment_id):
    """
    Body:
        approved: bool
        note: optional reviewer note
    """
    data = request.get_json(silent=True) or {}
    approved = data.get("approved")
    if not isinstance(approved, bool):
        return jsonify({"ok": False, "error": "approved must be true or false"}), 400
    note = data.get("note")
    if note is not None and not isinstance(note, str):
        return jsonify({"ok": False, "error": "note must be a string"}), 400

    try:
        return _respond(get_approval_service().review(g.actor, assignment_id, approved, note))
    except Exception as e:
        return _failure("review", assignment_id, e)
