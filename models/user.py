from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship

from models.base_model import Base, BaseModel
from models.video import watch_history
from utils.security import hash_password, verify_password


class User(BaseModel, Base):
    __tablename__ = "users"

    # usernames are stored lowercase; uniqueness is enforced here, not only in the workflow
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False, index=True)
    avatar = Column(String(1024), nullable=False)
    cover_image = Column(String(1024), nullable=True, default="")
    password_hash = Column(String(255), nullable=False)
    # single active refresh token; NULL after logout
    refresh_token = Column(Text, nullable=True)

    videos = relationship("Video", back_populates="owner", passive_deletes=True)

    watch_history = relationship(
        "Video",
        secondary=watch_history,
        order_by=watch_history.c.position,
        viewonly=True,
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @password.setter
    def password(self, plaintext: str):
        self.password_hash = hash_password(plaintext)

    def is_password_correct(self, password: str) -> bool:
        if not password or not self.password_hash:
            return False
        return verify_password(password, self.password_hash)

    def __repr__(self):
        return f"<User username={self.username}>"
