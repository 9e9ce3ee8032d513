from datetime import datetime
from educhain.courses.service import create_course
from educhain.models.cert import Cert
from conftest import make_user, login_as


def test_public_pages_render(client):
    for path in ["/", "/cert-viewer", "/auth/signin", "/auth/signup"]:
        r = client.get(path)
        assert r.status_code == 200, path
        assert "EduChain" in r.text
    assert client.get("/static/style.css").status_code == 200


def test_cert_viewer_finds_minted_cert(client, db):
    issuer = make_user(db, "registrar@uni.edu", role="issuer", password=None, institution_name="Uni")
    course = create_course(db, issuer_id=issuer.id, name="Cryptography", description="d", image_filename="", emails=["a@x.com"])
    cert = db.query(Cert).filter(Cert.course_id == course.id).one()
    cert.cert_hash = "DigestXYZ"
    cert.minted_at = datetime(2024, 5, 1)
    db.commit()

    r = client.get("/cert-viewer", params={"digest": "DigestXYZ"})
    assert "Cryptography" in r.text
    assert "a@x.com" in r.text
    assert "Uni" in r.text

    r = client.get("/cert-viewer", params={"digest": "nope"})
    assert "No certificate was minted" in r.text


def test_student_pages(client, db, settings):
    issuer = make_user(db, "registrar@uni.edu", role="issuer", password=None, institution_name="Uni")
    student = make_user(db, "a@x.com", password=None)
    course = create_course(db, issuer_id=issuer.id, name="Cryptography", description="Ciphers", image_filename="", emails=["a@x.com"])
    create_course(db, issuer_id=issuer.id, name="Not mine", description="d", image_filename="", emails=["b@x.com"])
    login_as(client, db, student, settings)

    home = client.get("/dashboard/student")
    assert "Cryptography" in home.text
    assert "Not mine" not in home.text

    detail = client.get(f"/dashboard/student/courses/{course.id}")
    assert "Mint my certificate" in detail.text
    assert "Uni" in detail.text

    r = client.get("/dashboard/student/courses/9999", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/dashboard/student"
