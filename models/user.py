from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, CheckConstraint

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


class User(BaseModel, Base):
    __tablename__ = "users"
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default=ROLE_USER)

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @property
    def is_privileged(self) -> bool:
        return self.role == ROLE_ADMIN
