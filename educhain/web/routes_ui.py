
from fastapi import APIRouter, Request, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session
from educhain.auth.deps import get_db
from educhain.certs.service import find_minted_cert
from educhain.web.templating import templates

router = APIRouter(tags=["ui"])

@router.get("/", response_class=HTMLResponse)
async def home(request: Request):
    return templates.TemplateResponse(request, "index.html", {"title": "EduChain"})

@router.get("/cert-viewer", response_class=HTMLResponse)
def cert_viewer(request: Request, digest: str | None = None, db: Session = Depends(get_db)):
    found = find_minted_cert(db, digest.strip()) if digest and digest.strip() else None
    return templates.TemplateResponse(
        request, "cert_viewer.html",
        {"title": "Cert Viewer", "digest": digest, "found": found},
    )

@router.get("/auth/signin", response_class=HTMLResponse)
async def signin_page(request: Request):
    return templates.TemplateResponse(request, "signin.html", {"title": "Login", "values": {}})

@router.get("/auth/signup", response_class=HTMLResponse)
async def signup_page(request: Request):
    return templates.TemplateResponse(request, "signup.html", {"title": "Register", "values": {}})
