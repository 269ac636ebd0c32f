# tests/conftest.py
# -*- coding: utf-8 -*-
import os
import sys
import uuid
import pathlib
import tempfile
from decimal import Decimal

import pytest


# =====================================================================================
# Localização do projeto (garante que "aquador_app" e "config" estejam no sys.path)
# =====================================================================================
def _add_project_root():
    here = pathlib.Path(__file__).resolve()
    for candidate in [here.parent, *here.parents]:
        if (candidate / "aquador_app").is_dir():
            if str(candidate) not in sys.path:
                sys.path.insert(0, str(candidate))
            return candidate
    return None


PROJECT_ROOT = _add_project_root()

# =====================================================================================
# Ambiente de testes: definido ANTES de qualquer import da app (config.py lê no import)
# =====================================================================================
_fd, _DB_PATH = tempfile.mkstemp(prefix="aquador_test_", suffix=".sqlite")
os.close(_fd)
os.environ["APP_ENV"] = "testing"
os.environ["FLASK_ENV"] = "testing"
os.environ["DISABLE_SCHEDULER"] = "1"
os.environ["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{_DB_PATH}"
os.environ.setdefault("SECRET_KEY", "testing-secret")


# =====================================================================================
# App Flask com SQLite temporário e schema criado uma vez por sessão
# =====================================================================================
@pytest.fixture(scope="session")
def app():
    from aquador_app import create_app
    from aquador_app.extensions import db

    app = create_app()
    app.config.update(
        STRIPE_SECRET_KEY="sk_test_123",
        STRIPE_WEBHOOK_SECRET="whsec_test_123",
        STRIPE_SUCCESS_URL="https://example.test/success?session_id={CHECKOUT_SESSION_ID}",
        STRIPE_CANCEL_URL="https://example.test/cancel",
        JWT_SECRET_KEY="jwt-testing-secret",
        CLEANUP_FUNCTION_SECRET="",
    )

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
    try:
        os.remove(_DB_PATH)
    except OSError:
        pass


@pytest.fixture
def client(app):
    return app.test_client()


# =====================================================================================
# Sessão de DB por teste; as tabelas são esvaziadas ao final de cada teste
# (os testes contam linhas, então nada pode vazar entre eles)
# =====================================================================================
@pytest.fixture
def db_session(app):
    from aquador_app.extensions import db
    with app.app_context():
        try:
            yield db.session
        finally:
            db.session.rollback()
            for table in reversed(db.metadata.sorted_tables):
                db.session.execute(table.delete())
            db.session.commit()
            db.session.remove()


# =====================================================================================
# Mocks do Stripe (sem rede)
#   - stripe_sessions: dict session_id -> objeto devolvido por checkout.Session.retrieve
# =====================================================================================
@pytest.fixture
def stripe_sessions(monkeypatch):
    import stripe

    sessions = {}
    calls = {"retrieve": [], "create": []}

    def _retrieve(session_id, *a, **k):
        calls["retrieve"].append(session_id)
        if session_id not in sessions:
            raise stripe.InvalidRequestError(f"No such checkout.session: {session_id}", "id")
        return sessions[session_id]

    def _create(**k):
        calls["create"].append(k)
        sid = f"cs_test_{uuid.uuid4().hex[:10]}"
        return {"id": sid, "url": f"https://checkout.stripe.test/{sid}"}

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", staticmethod(_retrieve), raising=False)
    monkeypatch.setattr(stripe.checkout.Session, "create", staticmethod(_create), raising=False)
    sessions["_calls"] = calls
    yield sessions


def paid_session(session_id="sess_123", class_id="class_9", payment_status="paid", amount_total=150000,
                 profile_id=None):
    metadata = {}
    if class_id:
        metadata["classId"] = class_id
    if profile_id:
        metadata["profileId"] = profile_id
    return {
        "id": session_id,
        "payment_status": payment_status,
        "amount_total": amount_total,
        "currency": "htg",
        "metadata": metadata,
    }


# =====================================================================================
# Factories
# =====================================================================================
@pytest.fixture
def make_user(db_session):
    from aquador_app.models import User, Profile

    def _make(email=None, *, is_admin=False, profile_id=None, full_name="Élève Test", with_profile=True):
        email = email or f"user+{uuid.uuid4().hex[:6]}@test.com"
        u = User(email=email, is_admin=is_admin)
        u.set_password("secret123")
        db_session.add(u)
        db_session.flush()
        p = None
        if with_profile:
            p = Profile(user_id=u.id, email=email, full_name=full_name,
                        role="admin" if is_admin else "student")
            if profile_id:
                p.id = profile_id
            db_session.add(p)
        db_session.commit()
        return u, p

    return _make


@pytest.fixture
def make_class(db_session):
    from aquador_app.models import SwimClass

    def _make(class_id=None, name="Natation Débutant", price="1500.00", **extra):
        c = SwimClass(name=name, price=Decimal(price), **extra)
        if class_id:
            c.id = class_id
        db_session.add(c)
        db_session.commit()
        return c

    return _make


@pytest.fixture
def make_enrollment(db_session):
    from aquador_app.models import Enrollment

    def _make(profile, swim_class=None, *, class_id=None, status="active", cancelled_at=None,
              payment_status="paid"):
        e = Enrollment(
            student_id=profile.id,
            class_id=class_id or swim_class.id,
            status=status,
            cancelled_at=cancelled_at,
            payment_status=payment_status,
        )
        db_session.add(e)
        db_session.commit()
        return e

    return _make


@pytest.fixture
def auth_headers(app):
    from aquador_app.security import create_access_token

    def _headers(user):
        with app.app_context():
            token = create_access_token(subject={"sub": str(user.id), "email": user.email})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_session(db_session):
    from aquador_app.models import ClassSession

    def _make(swim_class, session_date, *, max_participants=10, status="scheduled"):
        s = ClassSession(class_id=swim_class.id, session_date=session_date,
                         max_participants=max_participants, status=status)
        db_session.add(s)
        db_session.commit()
        return s

    return _make
