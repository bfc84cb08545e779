"""Note / NoteVersion 의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class Note(Base):
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    # 마지막으로 승인된 NoteVersion.version 과 항상 같다.
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime)

    owner = relationship("User", back_populates="notes")
    versions = relationship(
        "NoteVersion",
        back_populates="note",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="NoteVersion.version.desc()",
    )
    attachments = relationship(
        "Attachment",
        back_populates="note",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Attachment.id",
    )

    __table_args__ = (
        Index("idx_note_user", "user_id", "created_at"),
        # search_notes 의 MATCH(title, content) 는 MySQL 에서만 쓰인다.
        Index("ft_note_title_content", "title", "content", mysql_prefix="FULLTEXT").ddl_if(dialect="mysql"),
    )


class NoteVersion(Base):
    __tablename__ = "note_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    note_id = Column(Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False)
    version = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    deleted_at = Column(DateTime)

    note = relationship("Note", back_populates="versions")

    __table_args__ = (
        UniqueConstraint("note_id", "version", name="uq_note_version"),
    )
