#mcserver_engine\infrastructure\postgres\models.py
"""SQLAlchemy ORM models for database tables."""

from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, JSON, Boolean, Index

from mcserver_engine.infrastructure.postgres.database import Base


def _now():
    return datetime.now(timezone.utc)


class ServerORM(Base):
    """
    Server table - one row per provisioned Minecraft server.

    Indexes:
    - Primary key on unique_id
    - Index on owner for owner-scoped lookups
    - Composite index on (owner, subdomain_name) for alias lookups
    """

    __tablename__ = "servers"

    # Identity
    unique_id = Column(String(64), primary_key=True, nullable=False)
    owner = Column(String(255), nullable=False, index=True)
    server_name = Column(String(255), nullable=False)
    subdomain_name = Column(String(63), nullable=True)

    # Configuration
    server_config = Column(JSON, nullable=False, default=dict)
    environment_id = Column(Integer, nullable=True)
    port = Column(Integer, nullable=True)
    rcon_port = Column(Integer, nullable=True)
    stack_id = Column(Integer, nullable=True)

    # Cached status
    is_online = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    __table_args__ = (
        Index("ix_servers_owner_subdomain", "owner", "subdomain_name"),
    )

    def __repr__(self):
        return f"<ServerORM(unique_id={self.unique_id}, owner={self.owner}, online={self.is_online})>"
