import pytest
import yaml
from click.testing import CliRunner

from admin_backend.auth.passwords import PasswordHasher
from admin_backend.cli.cli import cli
from admin_backend.model.auth import User
from admin_backend.model.role import Role
from admin_backend.permissions.cache import PermissionCache
from admin_backend.permissions.resolver import PermissionResolver
from admin_backend.redis_cache import CacheLayer
from admin_backend.repositories import UserRepository
from admin_backend.seeder import Seeder
from admin_backend.tests.fixtures import MockCache

SEED = {
    "depts": [
        {"name": "Head office", "children": [{"name": "Engineering"}]},
    ],
    "menus": [
        {"title": "System", "children": [
            {"title": "Users", "type": 1, "children": [
                {"title": "List users", "type": 2, "perms": "sys:user:list,sys:user:get"},
            ]},
        ]},
    ],
    "roles": [
        {"name": "Operators", "code": "operator", "data_scope": "dept_and_children", "menus": ["List users"]},
    ],
    "users": [
        {"username": "alice", "password": "secret123", "dept": "Engineering", "roles": ["operator"]},
    ],
}


def test_seed_creates_everything(db):
    created = Seeder(db, PasswordHasher(rounds=4)).run(SEED)

    assert created == {"depts": 2, "menus": 3, "roles": 1, "users": 1}

    alice = UserRepository(db).find_by_username("alice")
    assert alice.dept.name == "Engineering"
    assert alice.dept.parent.name == "Head office"
    assert [role.code for role in alice.roles] == ["operator"]
    assert PasswordHasher(rounds=4).verify("secret123", alice.password)

    principal = PermissionResolver(PermissionCache(CacheLayer(MockCache()))).compute(db, alice.id)
    assert principal.permission_codes == {"sys:user:list", "sys:user:get"}
    assert [scope.mode.value for scope in principal.scopes] == ["dept_and_children"]


def test_seed_is_repeatable(db):
    Seeder(db, PasswordHasher(rounds=4)).run(SEED)

    created = Seeder(db, PasswordHasher(rounds=4)).run(SEED)

    assert created == {"depts": 0, "menus": 0, "roles": 0, "users": 0}
    assert db.query(User).count() == 1


def test_unknown_department_rolls_back(db):
    data = {
        "roles": [{"name": "Operators", "code": "operator"}],
        "users": [{"username": "bob", "password": "secret123", "dept": "Nowhere"}],
    }

    with pytest.raises(ValueError):
        Seeder(db, PasswordHasher(rounds=4)).run(data)

    assert db.query(Role).filter(Role.code == "operator").first() is None
    assert UserRepository(db).find_by_username("bob") is None


@pytest.mark.parametrize("data, message", [
    ({"roles": [{"name": "Operators", "code": "operator", "menus": ["Missing menu"]}]}, "Unknown menu in seed file: Missing menu"),
    ({"users": [{"username": "bob", "password": "secret123", "roles": ["missing"]}]}, "Unknown role in seed file: missing"),
    ({"users": [{"username": "bob", "password": "x" * 80}]}, "exceeds 72 bytes"),
])
def test_bad_references_raise_value_error(db, data, message):
    with pytest.raises(ValueError, match=message):
        Seeder(db, PasswordHasher(rounds=4)).run(data)

    assert db.query(Role).count() == 0
    assert db.query(User).count() == 0


class TestCli:

    @pytest.fixture
    def environ(self, tmp_path):
        return {
            "DATABASE_URL": f"sqlite:///{tmp_path / 'admin.db'}",
            "PASSWORD_HASH_ROUNDS": "4",
        }

    def test_hash_password(self):
        result = CliRunner().invoke(cli, ["hash-password", "secret123", "--rounds", "4"])

        assert result.exit_code == 0
        assert PasswordHasher().verify("secret123", result.output.strip())

    def test_hash_password_too_long(self):
        result = CliRunner().invoke(cli, ["hash-password", "x" * 80, "--rounds", "4"])

        assert result.exit_code == 1
        assert "72 bytes" in result.output

    def test_init_db_then_seed(self, tmp_path, environ):
        seed_file = tmp_path / "seed.yaml"
        seed_file.write_text(yaml.safe_dump(SEED))
        runner = CliRunner()

        result = runner.invoke(cli, ["init-db"], env=environ)
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, ["seed", "--file", str(seed_file)], env=environ)
        assert result.exit_code == 0, result.output
        assert "users: 1 created" in result.output

    def test_seed_reports_bad_file(self, tmp_path, environ):
        seed_file = tmp_path / "seed.yaml"
        seed_file.write_text(yaml.safe_dump({"users": [{"username": "bob", "password": "x", "dept": "Nowhere"}]}))
        runner = CliRunner()
        runner.invoke(cli, ["init-db"], env=environ)

        result = runner.invoke(cli, ["seed", "--file", str(seed_file)], env=environ)

        assert result.exit_code == 1
        assert "Unknown department" in result.output

    def test_create_superuser(self, environ):
        runner = CliRunner()
        runner.invoke(cli, ["init-db"], env=environ)

        result = runner.invoke(cli, ["create-superuser", "-u", "root", "-p", "secret123"], env=environ)
        assert result.exit_code == 0, result.output
        assert "Created superuser root" in result.output

        result = runner.invoke(cli, ["create-superuser", "-u", "root", "-p", "secret123"], env=environ)
        assert result.exit_code == 1
