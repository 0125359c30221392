from __future__ import annotations

import asyncio
import os
import secrets
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from mindwell import (
    ExternalServiceError,
    Session,
    ValidationError,
    configure_logging,
    load_settings,
    workspace_root,
)

UNAVAILABLE_MESSAGE = "I'm having trouble reflecting right now. Please try again later."
WRONG_PIN_MESSAGE = "Incorrect PIN. Please try again."


# ── HTML helpers ──────────────────────────────────────────────

def _escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


# ── Session & auth ────────────────────────────────────────────

security = HTTPBasic(auto_error=False)


def _open_session() -> Session:
    root = workspace_root()
    configure_logging(load_settings(root).log_level)
    return Session.open(root)


def _session_lock(app: FastAPI) -> asyncio.Lock:
    lock = getattr(app.state, "session_lock", None)
    if lock is None:
        lock = app.state.session_lock = asyncio.Lock()
    return lock


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.session_lock = asyncio.Lock()
    app.state.session = _open_session()
    try:
        yield
    finally:
        async with app.state.session_lock:
            app.state.session.close()
            app.state.session = None
        app.state.session_lock = None


app = FastAPI(title="MindWell", version="0.1.0", lifespan=lifespan)


async def get_session(request: Request) -> Session:
    """The process-wide session built at startup, or on first use without one."""
    session = getattr(request.app.state, "session", None)
    if session is None:
        session = request.app.state.session = _open_session()
    return session


async def locked_session(request: Request, session: Session = Depends(get_session)) -> AsyncIterator[Session]:
    """Serialize requests on the session.

    Sync endpoints run in the threadpool and the stores are not thread-safe, so
    the lock is held until the response is done. Waiters queue on the event loop.
    """
    async with _session_lock(request.app):
        yield session


def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("MINDWELL_USERNAME", "")
    expected_password = os.environ.get("MINDWELL_PASSWORD", "")

    if credentials is None:
        if not expected_username or not expected_password:
            return "guest"
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    if not expected_username or not expected_password:
        return "guest"

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


def unlocked_session(
    session: Session = Depends(locked_session),
    username: str = Depends(get_current_user),
) -> Session:
    """Session for endpoints that expose journal data; refused while PIN-locked."""
    if session.lock.is_locked:
        raise HTTPException(status_code=status.HTTP_423_LOCKED, detail="Locked")
    return session


def _toast(session: Session) -> dict[str, Any] | None:
    head = session.achievements.current_toast()
    return head.to_dict() if head else None


# ── Health & overview ─────────────────────────────────────────

@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


@app.get("/", response_class=HTMLResponse)
def index(session: Session = Depends(locked_session), username: str = Depends(get_current_user)) -> HTMLResponse:
    if session.lock.is_locked:
        return HTMLResponse("<h1>MindWell</h1><p>Enter your PIN to continue.</p>", status_code=423)

    rows = []
    for e in session.journal.list()[:20]:
        tags = ", ".join(e.activity_tags)
        reframe = f"<p><em>{_escape(e.reframe)}</em></p>" if e.reframe else ""
        rows.append(
            f"<li><b>{_escape(e.mood)}</b> <small>{_escape(e.timestamp)}</small>"
            f"<p>{_escape(e.user_content)}</p><p>{_escape(e.ai_response)}</p>{reframe}"
            f"<small>{_escape(tags)}</small></li>"
        )
    goals = [
        f"<li>{'[x]' if g.is_completed else '[ ]'} {_escape(g.text)}</li>"
        for g in session.goals.list()
    ]
    badges = [
        f"<li>{'🏆' if a.unlocked else '🔒'} {_escape(a.title)}</li>"
        for a in session.achievement_records()
    ]
    toast = session.achievements.current_toast()
    toast_html = f"<div class=\"toast\">ACHIEVEMENT UNLOCKED: {_escape(toast.title)}</div>" if toast else ""

    html = (
        "<!doctype html><html><head><meta charset=\"utf-8\"><title>MindWell</title></head><body>"
        f"{toast_html}<h1>MindWell</h1>"
        f"<h2>Journal</h2><ol>{''.join(rows) or '<li>(no entries yet)</li>'}</ol>"
        f"<h2>Goals</h2><ul>{''.join(goals) or '<li>(no goals yet)</li>'}</ul>"
        f"<h2>Progress</h2><ul>{''.join(badges)}</ul>"
        "</body></html>"
    )
    return HTMLResponse(html)


@app.get("/api/state")
def api_state(session: Session = Depends(locked_session), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Lock state is always visible; counts only once unlocked."""
    state: dict[str, Any] = {"lock": session.lock.state}
    if not session.lock.is_locked:
        completed, total, percent = session.goals.progress()
        unlocked, catalog, earned = session.achievements.progress()
        state.update({
            "entries": len(session.journal),
            "goals": {"completed": completed, "total": total, "percent": percent},
            "achievements": {"unlocked": unlocked, "total": catalog, "percent": earned},
            "toast": _toast(session),
        })
    return state


# ── Lock ──────────────────────────────────────────────────────

@app.post("/api/lock/check")
def api_check_pin(payload: dict[str, Any] = Body(...), session: Session = Depends(locked_session), username: str = Depends(get_current_user)) -> dict[str, Any]:
    if not session.lock.check_pin(str(payload.get("pin", ""))):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=WRONG_PIN_MESSAGE)
    return {"ok": True, "lock": session.lock.state}


@app.post("/api/lock/pin")
def api_set_pin(payload: dict[str, Any] = Body(...), session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    try:
        session.lock.set_pin(str(payload.get("pin", "")))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"ok": True, "lock": session.lock.state}


@app.delete("/api/lock/pin")
def api_remove_pin(session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    session.lock.remove_pin()
    return {"ok": True, "lock": session.lock.state}


@app.post("/api/lock")
def api_lock(session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    session.lock.lock()
    return {"ok": True, "lock": session.lock.state}


# ── Journal ───────────────────────────────────────────────────

@app.get("/api/entries")
def api_list_entries(q: str = "", session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    entries = session.journal.search(q) if q else session.journal.list()
    return {"entries": [e.to_dict() for e in entries]}


@app.post("/api/entries")
def api_create_entry(payload: dict[str, Any] = Body(...), session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    """Analyze and store a new entry. AI failure leaves the journal untouched (503)."""
    tags = payload.get("tags") or []
    if not isinstance(tags, list):
        raise HTTPException(status_code=422, detail="tags must be a list")
    try:
        result = session.write_entry(str(payload.get("text", "")), tags=[str(t) for t in tags])
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ExternalServiceError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=UNAVAILABLE_MESSAGE)
    if result.distress:
        return {"ok": False, "distress": True}
    return {"ok": True, "entry": result.entry.to_dict(), "toast": _toast(session)}


@app.get("/api/correlation")
def api_correlation(session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    """Mood counts per activity tag."""
    return {"correlation": session.journal.mood_by_activity()}


@app.get("/api/tracker")
def api_tracker(session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    """Newest mood per local day, newest day first."""
    days = session.journal.latest_by_day(session.tz)
    return {
        "days": [
            {"date": day.isoformat(), "mood": e.mood, "entryId": e.id}
            for day, e in days.items()
        ]
    }


@app.post("/api/insights")
def api_insights(session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    try:
        summary = session.request_insights()
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ExternalServiceError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not generate insights. Please try again later.",
        )
    return {"ok": True, "insights": summary.to_dict()}


@app.get("/api/quote")
def api_quote(session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    quote = session.daily_quote()
    return {"quote": quote.to_dict() if quote else None}


# ── Goals ─────────────────────────────────────────────────────

@app.get("/api/goals")
def api_list_goals(session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    completed, total, percent = session.goals.progress()
    focus = session.goals.focus()
    return {
        "goals": [g.to_dict() for g in session.goals.list()],
        "progress": {"completed": completed, "total": total, "percent": percent},
        "focus": focus.to_dict() if focus else None,
    }


@app.post("/api/goals")
def api_create_goal(payload: dict[str, Any] = Body(...), session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    try:
        goal = session.add_goal(str(payload.get("text", "")))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"ok": True, "goal": goal.to_dict(), "toast": _toast(session)}


@app.post("/api/goals/refine")
def api_refine_goal(payload: dict[str, Any] = Body(...), session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    try:
        refined = session.refine_goal(str(payload.get("text", "")))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ExternalServiceError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not refine goal. Please try again.",
        )
    return {"ok": True, "refinedGoal": refined}


@app.post("/api/goals/{goal_id}/toggle")
def api_toggle_goal(goal_id: str, session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    goal = session.goals.toggle_completion(goal_id)
    if goal is None:
        raise HTTPException(status_code=404, detail=f"Goal not found: {goal_id}")
    return {"ok": True, "goal": goal.to_dict(), "toast": _toast(session)}


@app.delete("/api/goals/{goal_id}")
def api_delete_goal(goal_id: str, session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    if not session.goals.remove(goal_id):
        raise HTTPException(status_code=404, detail=f"Goal not found: {goal_id}")
    return {"ok": True, "goal_id": goal_id}


# ── Achievements ──────────────────────────────────────────────

@app.get("/api/achievements")
def api_achievements(session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    unlocked, total, percent = session.achievements.progress()
    return {
        "achievements": [a.to_dict() for a in session.achievement_records()],
        "progress": {"unlocked": unlocked, "total": total, "percent": percent},
    }


@app.get("/api/toasts")
def api_toasts(session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    return {"toasts": [a.to_dict() for a in session.achievements.toast_queue]}


@app.post("/api/toasts/dismiss")
def api_dismiss_toast(session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    dismissed = session.achievements.dismiss_toast()
    return {
        "ok": True,
        "dismissed": dismissed.to_dict() if dismissed else None,
        "toast": _toast(session),
    }


@app.post("/api/actions/creative-tool")
def api_creative_tool(session: Session = Depends(unlocked_session)) -> dict[str, Any]:
    session.use_creative_tool()
    return {"ok": True, "toast": _toast(session)}


def main() -> None:
    import uvicorn

    uvicorn.run(app, host=os.environ.get("MINDWELL_HOST", "127.0.0.1"), port=int(os.environ.get("MINDWELL_PORT", "8000")))


if __name__ == "__main__":
    main()
