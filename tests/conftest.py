import os
import pytest

# 保险：就算 .env 不在也能跑
os.environ.setdefault("secret_key", "test_secret")
os.environ.setdefault("seed_demo_data", "false")

from fastapi.testclient import TestClient

from resourcehub.main import app
from resourcehub.models import Role
from resourcehub.schemas import UserCreate, DepartmentCreate, DepartmentUpdate
from resourcehub.security import hash_password
from resourcehub.storage import MemStorage, get_storage

PASSWORD = "p123456"


@pytest.fixture
def storage():
    return MemStorage()


@pytest.fixture
def client(storage):
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def dept(storage):
    """一个部门，负责人 head，教师 teacher，另配技术员和资源管理员"""
    d = storage.create_department(DepartmentCreate(name="Informatique"))
    pw = hash_password(PASSWORD)

    def make(username, role, department_id=d.id):
        return storage.create_user(
            UserCreate(username=username, password=PASSWORD, full_name=username.title(),
                       role=role, department_id=department_id),
            pw,
        )

    users = {
        "head": make("head", Role.department_head),
        "teacher": make("teacher", Role.teacher),
        "teacher2": make("teacher2", Role.teacher),
        "tech": make("tech", Role.technician, None),
        "manager": make("manager", Role.resource_manager, None),
    }
    storage.update_department(d.id, DepartmentUpdate(head_id=users["head"].id))
    return {"department": storage.get_department(d.id), **users}


@pytest.fixture
def login(client):
    def _login(username: str, password: str = PASSWORD) -> dict:
        r = client.post("/api/login", data={"username": username, "password": password})
        assert r.status_code == 200
        # 清掉登录时设置的 cookie，后续请求只靠 Header 区分身份
        client.cookies.clear()
        return {"Authorization": f"Bearer {r.json()['access_token']}"}
    return _login
