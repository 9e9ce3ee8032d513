import logging
from fastapi import APIRouter, Request, Depends
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from sqlalchemy.orm import Session
from educhain.auth.deps import CurrentUser, get_db, get_ledger, get_settings, require_student
from educhain.certs.minting import CertMinter, CertNotFound, MintError
from educhain.certs.service import get_student_course, list_student_courses
from educhain.config import Settings
from educhain.ledger.client import SuiClient
from educhain.utils.http import read_payload
from educhain.web.templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(tags=["student"])

@router.get("/dashboard/student", response_class=HTMLResponse)
def student_home(request: Request, db: Session = Depends(get_db), user: CurrentUser = Depends(require_student)):
    rows = list_student_courses(db, user.email)
    return templates.TemplateResponse(request, "student_dashboard.html", {"title": "Dashboard", "rows": rows})

@router.get("/dashboard/student/courses/{course_id}", response_class=HTMLResponse)
def student_course_detail(request: Request, course_id: int, db: Session = Depends(get_db), user: CurrentUser = Depends(require_student)):
    row = get_student_course(db, user.email, course_id)
    if not row:
        return RedirectResponse(url="/dashboard/student", status_code=303)
    cert, course, issuer = row
    return templates.TemplateResponse(
        request, "student_course_detail.html",
        {"title": "Course Detail", "cert": cert, "course": course, "issuer": issuer},
    )

@router.post("/mint-cert")
async def mint_cert(
    request: Request,
    db: Session = Depends(get_db),
    ledger: SuiClient = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
    user: CurrentUser = Depends(require_student),
):
    payload, is_json = await read_payload(request)
    try:
        cert_id = int(payload.get("cert_id"))
    except (TypeError, ValueError):
        return JSONResponse({"error": "cert_id must be an integer", "field": "cert_id"}, status_code=400)

    try:
        attempt = await CertMinter(db, ledger, settings).mint(cert_id, user.email)
    except CertNotFound:
        if is_json:
            return JSONResponse({"error": CertNotFound.public_message}, status_code=404)
        return RedirectResponse(url="/dashboard/student", status_code=303)
    except MintError as e:
        return JSONResponse({"error": e.public_message}, status_code=e.status_code)

    if is_json:
        return {"cert_id": attempt.cert_id, "cert_hash": attempt.digest, "state": attempt.state.value}
    return RedirectResponse(url=f"/dashboard/student/courses/{attempt.course_id}", status_code=303)
