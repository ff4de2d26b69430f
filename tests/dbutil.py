"""In-memory SQLite database and seed helpers shared by the tests."""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from partsauth.core.config import Settings
from partsauth.core.security import hash_password
from partsauth.models import Base, Module, Principal, Role, RoleModulePermission
from partsauth.services.permissions import ModuleName

PASSWORD = "correct-horse-battery"

# Low bcrypt cost keeps the suite fast; the hash format is the same.
FAST_ROUNDS = 4


def make_session_factory() -> sessionmaker:
    """Fresh in-memory database with every table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {"BCRYPT_ROUNDS": FAST_ROUNDS}
    values.update(overrides)
    return Settings(**values)


def add_principal(
    db: Session,
    email: str = "a@x.com",
    password: str = PASSWORD,
    principal_type: str = "admin",
    status: str = "active",
    role: Role | None = None,
    name: str = "Test User",
) -> Principal:
    principal = Principal(
        email=email,
        name=name,
        password_hash=hash_password(password, rounds=FAST_ROUNDS),
        principal_type=principal_type,
        status=status,
        role_id=role.id if role is not None else None,
    )
    db.add(principal)
    db.commit()
    db.refresh(principal)
    return principal


def add_role(db: Session, name: str = "Operator", status: str = "active") -> Role:
    role = Role(name=name, status=status)
    db.add(role)
    db.commit()
    db.refresh(role)
    return role


def add_all_modules(db: Session) -> dict[ModuleName, Module]:
    modules = {m: Module(name=m.value) for m in ModuleName}
    db.add_all(modules.values())
    db.commit()
    return modules


def grant(
    db: Session,
    role: Role,
    module: Module,
    read: bool = False,
    create: bool = False,
    update: bool = False,
    delete: bool = False,
) -> RoleModulePermission:
    row = RoleModulePermission(
        role_id=role.id,
        module_id=module.id,
        can_read=read,
        can_create=create,
        can_update=update,
        can_delete=delete,
    )
    db.add(row)
    db.commit()
    return row
