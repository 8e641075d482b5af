#mcserver_engine\infrastructure\postgres\repository.py

"""PostgreSQL repository implementation using SQLAlchemy."""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from mcserver_engine.core.repository import ServerRepository
from mcserver_engine.core.models import Server, ServerConfig, utcnow
from mcserver_engine.core.errors import (
    ServerAlreadyExists,
    ServerNotFound,
    ServerPersistenceError,
)
from mcserver_engine.infrastructure.postgres.database import get_session_factory
from mcserver_engine.infrastructure.postgres.models import ServerORM

logger = logging.getLogger(__name__)


# ============================================
# Mapping Functions
# ============================================

def orm_to_domain(orm: ServerORM) -> Server:
    """Convert ORM model to domain model."""
    return Server(
        unique_id=orm.unique_id,
        owner=orm.owner,
        server_name=orm.server_name,
        subdomain_name=orm.subdomain_name,
        server_config=ServerConfig.from_dict(orm.server_config),
        environment_id=orm.environment_id,
        port=orm.port,
        rcon_port=orm.rcon_port,
        stack_id=orm.stack_id,
        is_online=bool(orm.is_online),
        created_at=orm.created_at,
        updated_at=orm.updated_at,
    )


def domain_to_orm(server: Server) -> ServerORM:
    """Convert domain model to ORM model."""
    return ServerORM(
        unique_id=server.unique_id,
        owner=server.owner,
        server_name=server.server_name,
        subdomain_name=server.subdomain_name,
        server_config=server.server_config.to_dict(),
        environment_id=server.environment_id,
        port=server.port,
        rcon_port=server.rcon_port,
        stack_id=server.stack_id,
        is_online=server.is_online,
        created_at=server.created_at,
        updated_at=server.updated_at,
    )


# ============================================
# Repository Implementation
# ============================================

class PostgresServerRepository(ServerRepository):
    """SQLAlchemy implementation with an injectable session factory."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        """
        Args:
            session_factory: SQLAlchemy session factory. If None, the default
                production factory is built on first use.
        """
        self._session_factory = session_factory

    def _get_session(self) -> Session:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory()

    # -------------------------
    # CREATE
    # -------------------------

    def create(self, server: Server) -> None:
        session = self._get_session()
        try:
            session.add(domain_to_orm(server))
            session.commit()
            logger.debug(f"[postgres] create {server.unique_id} -> done")
        except IntegrityError as e:
            session.rollback()
            raise ServerAlreadyExists(f"Server {server.unique_id} already exists") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise ServerPersistenceError(f"Failed to create server: {e}") from e
        finally:
            session.close()

    # -------------------------
    # READ
    # -------------------------

    def get(self, unique_id: str) -> Optional[Server]:
        session = self._get_session()
        try:
            orm = session.get(ServerORM, unique_id)
            if orm is None:
                logger.debug(f"[postgres] get {unique_id} -> not found")
                return None
            return orm_to_domain(orm)
        finally:
            session.close()

    def find_candidates(self, owner: str, identifier: str, allow_aliases: bool) -> List[Server]:
        session = self._get_session()
        try:
            query = session.query(ServerORM).filter(ServerORM.owner == owner)

            if allow_aliases:
                query = query.filter(or_(
                    ServerORM.unique_id == identifier,
                    ServerORM.subdomain_name == identifier,
                    ServerORM.server_name == identifier,
                ))
            else:
                query = query.filter(ServerORM.unique_id == identifier)

            rows = query.all()
            logger.debug(f"[postgres] find owner={owner} id={identifier} -> {len(rows)} rows")
            return [orm_to_domain(orm) for orm in rows]
        finally:
            session.close()

    def list_by_owner(self, owner: str) -> Iterable[Server]:
        session = self._get_session()
        try:
            rows = (
                session.query(ServerORM)
                .filter(ServerORM.owner == owner)
                .order_by(ServerORM.created_at.asc())
                .all()
            )
            return [orm_to_domain(orm) for orm in rows]
        finally:
            session.close()

    def list_all(self) -> Iterable[Server]:
        session = self._get_session()
        try:
            return [orm_to_domain(orm) for orm in session.query(ServerORM).all()]
        finally:
            session.close()

    # -------------------------
    # UPDATE
    # -------------------------

    def update_fields(self, unique_id: str, **fields) -> None:
        self._check_fields(fields)
        session = self._get_session()
        try:
            values = dict(fields)
            values["updated_at"] = utcnow()
            updated = (
                session.query(ServerORM)
                .filter(ServerORM.unique_id == unique_id)
                .update(values, synchronize_session=False)
            )
            if updated == 0:
                session.rollback()
                raise ServerNotFound(unique_id)
            session.commit()
            logger.debug(f"[postgres] update {unique_id} {sorted(fields)} -> done")
        except SQLAlchemyError as e:
            session.rollback()
            raise ServerPersistenceError(f"Failed to update server {unique_id}: {e}") from e
        finally:
            session.close()

    # -------------------------
    # DELETE
    # -------------------------

    def delete(self, unique_id: str) -> bool:
        session = self._get_session()
        try:
            deleted = (
                session.query(ServerORM)
                .filter(ServerORM.unique_id == unique_id)
                .delete(synchronize_session=False)
            )
            session.commit()
            logger.debug(f"[postgres] delete {unique_id} -> {deleted}")
            return deleted > 0
        except SQLAlchemyError as e:
            session.rollback()
            raise ServerPersistenceError(f"Failed to delete server {unique_id}: {e}") from e
        finally:
            session.close()
