import os

# Settings are read on first import; point them at throwaway values
os.environ["AWS_ACCESS_KEY_ID"] = "test-access-key"
os.environ["AWS_SECRET_ACCESS_KEY"] = "test-secret-key"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["AWS_S3_BUCKET_NAME"] = "drive-bucket"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from drivebroker.core.security import hash_password, issue_access_token
from drivebroker.main import app
from drivebroker.models import Base, User
from drivebroker.models.database import build_engine, get_db
from drivebroker.services.object_store import ObjectStoreClient, get_object_store


class FakeS3Client:
    """Records signing calls and deletes; no network."""

    def __init__(self):
        self.objects: set[str] = set()
        self.signed: list[tuple[str, dict, int]] = []
        self.deleted: list[str] = []
        self.report_missing = False
        self.failing_keys: set[str] = set()

    def generate_presigned_url(self, ClientMethod, Params=None, ExpiresIn=3600):
        self.signed.append((ClientMethod, dict(Params), ExpiresIn))
        return f"https://{Params['Bucket']}.s3.example/{Params['Key']}?X-Amz-Signature=fake"

    def delete_object(self, Bucket: str, Key: str):
        if Key in self.failing_keys:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "DeleteObject")
        if Key not in self.objects and self.report_missing:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "DeleteObject")
        self.objects.discard(Key)
        self.deleted.append(Key)
        return {}

    @property
    def last_params(self) -> dict:
        return self.signed[-1][1]


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def fake_s3():
    return FakeS3Client()


@pytest.fixture()
def store(fake_s3):
    return ObjectStoreClient(fake_s3, "drive-bucket", expires_in=3600)


@pytest.fixture()
def make_user(db_session):
    def _make(user_id: str, username: str | None = None, password: str = "secret") -> User:
        user = User(id=user_id, username=username or user_id, password=hash_password(password))
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture()
def u1(make_user):
    return make_user("u1")


@pytest.fixture()
def u2(make_user):
    return make_user("u2")


@pytest.fixture()
def auth_headers():
    def _headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {issue_access_token(user_id)}"}

    return _headers


@pytest.fixture()
def client(db_session, store):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_object_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
