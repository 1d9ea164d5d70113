import time
from typing import Set, Tuple

from quizgrid import db, socketio
from quizgrid.models import STATUS_ACTIVE, GameSession


_scheduled_keys: Set[Tuple[int, float]] = set()


def schedule_time_limit(app, session_id: int) -> None:
    """Schedule the automatic finish of an active session at its deadline.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Ensures a single timer per (session_id, started_at)
    - The worker re-checks status and start time before finishing, so a
      session ended early by the teacher is left alone
    """
    if not app.config.get('ENFORCE_TIME_LIMIT', True):
        return
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return

    with app.app_context():
        session = db.session.get(GameSession, session_id)
        if not session or session.status != STATUS_ACTIVE or session.deadline is None:
            return
        key = (session.id, session.started_at)
        if key in _scheduled_keys:
            app.logger.info(f"[timer-skip] session={session.id} already scheduled")
            return
        _scheduled_keys.add(key)
        delay = max(0.0, session.deadline - time.time())
        app.logger.info(f"[timer-set] session={session.id} delay={delay:.1f}s deadline={session.deadline}")
        started_at = session.started_at

    socketio.start_background_task(expire_session_at_deadline, app, session_id, started_at, delay)


def expire_session_at_deadline(app, session_id: int, started_at: float, delay: float) -> bool:
    """Timer body: sleep out the remaining time, then finish the session if it is still running."""
    if delay > 0:
        time.sleep(delay)
    from .sessions import expire_if_elapsed, session_lock

    with app.app_context():
        _scheduled_keys.discard((session_id, started_at))
        with session_lock(session_id):
            session = db.session.get(GameSession, session_id)
            if not session:
                return False
            db.session.refresh(session)
            app.logger.info(
                f"[timer-fire] session={session_id} status={session.status} started_at={session.started_at}"
            )
            if session.started_at != started_at:
                app.logger.info(f"[timer-abort] session={session_id} restarted since scheduling")
                return False
            return expire_if_elapsed(session)
