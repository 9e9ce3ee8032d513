import logging
from fastapi import APIRouter, Request, UploadFile, Form, File, Depends
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session
from educhain.auth.deps import CurrentUser, get_db, get_settings, require_issuer
from educhain.config import Settings
from educhain.courses.service import (
    CourseFormError,
    course_exists,
    create_course,
    discard_upload,
    get_issuer_course,
    list_issuer_courses,
    parse_student_emails,
    save_upload,
)
from educhain.web.templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["issuer"])

def _form_page(request: Request, values: dict | None = None, error: str | None = None, status_code: int = 200):
    return templates.TemplateResponse(
        request, "issuer_new_course.html",
        {"title": "Create Course", "values": values or {}, "error": error},
        status_code=status_code,
    )

@router.get("/issuer", response_class=HTMLResponse)
def issuer_home(request: Request, db: Session = Depends(get_db), user: CurrentUser = Depends(require_issuer)):
    courses = list_issuer_courses(db, user.id)
    return templates.TemplateResponse(request, "issuer_dashboard.html", {"title": "Dashboard", "courses": courses})

@router.get("/issuer/courses/new", response_class=HTMLResponse)
def new_course_form(request: Request, user: CurrentUser = Depends(require_issuer)):
    return _form_page(request)

@router.get("/issuer/courses/{course_id}", response_class=HTMLResponse)
def issuer_course_detail(request: Request, course_id: int, db: Session = Depends(get_db), user: CurrentUser = Depends(require_issuer)):
    course = get_issuer_course(db, user.id, course_id)
    if not course:
        return RedirectResponse(url="/dashboard/issuer", status_code=303)
    return templates.TemplateResponse(
        request, "issuer_course_detail.html",
        {"title": "Course Detail", "course": course, "certs": course.certs},
    )

@router.post("/courses/new", response_class=HTMLResponse)
def create_course_route(
    request: Request,
    course_name: str = Form(""),
    course_description: str = Form(""),
    student_emails: str = Form(""),
    course_image: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    user: CurrentUser = Depends(require_issuer),
):
    values = {
        "course_name": course_name.strip(),
        "course_description": course_description.strip(),
        "student_emails": student_emails,
    }
    emails = parse_student_emails(student_emails)

    if not values["course_name"] or not values["course_description"] or not emails:
        return _form_page(request, values, "Missing fields: name, description and at least one student email are required.", 400)

    if course_exists(db, user.id, values["course_name"]):
        return _form_page(request, values, f"A course named '{values['course_name']}' already exists.", 400)

    image_filename = ""
    if course_image is not None and course_image.filename:
        try:
            image_filename = save_upload(settings.upload_dir, course_image)
        except CourseFormError as e:
            return _form_page(request, values, e.message, e.status_code)

    try:
        course = create_course(
            db,
            issuer_id=user.id,
            name=values["course_name"],
            description=values["course_description"],
            image_filename=image_filename,
            emails=emails,
        )
    except Exception:
        if image_filename:
            discard_upload(settings.upload_dir, image_filename)
        raise
    return RedirectResponse(url=f"/dashboard/issuer/courses/{course.id}", status_code=303)
