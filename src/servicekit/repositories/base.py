"""Generic repository base class with common CRUD operations."""
import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.servicekit.exceptions import (
    DatabaseError,
    RepositoryConflictError,
    RepositoryNotFoundError,
)
from src.servicekit.models.base import Base, utcnow

logger = logging.getLogger(__name__)

# Generic type variable for model classes
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations.

    Concrete repositories inherit from this and override what they need,
    typically ``get_preloads()`` to eager-load relationships. Models with a
    ``deleted_at`` column (``SoftDeleteMixin``) are soft-deleted and hidden
    from reads until restored.

    Every write accepts an optional ``session`` so the call can join a
    transaction opened by ``TransactionalRepository``; without one, the
    repository's own session is used.

    Example:
        class AccountRepository(BaseRepository[Account]):
            def __init__(self, session):
                super().__init__(Account, session)

            def get_preloads(self):
                return ["addresses"]
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async session for database operations
        """
        self.model = model
        self.session = session
        self._model_name = model.__name__
        self._soft_delete = hasattr(model, "deleted_at")

    def get_preloads(self) -> List[str]:
        """Relationship names eager-loaded on every read (default: none)."""
        return []

    def get_type(self) -> str:
        """Describe the repository and its model, for logs."""
        return f"{type(self).__name__}[{self._model_name}]"

    def transaction_check(self, session: Optional[AsyncSession] = None) -> AsyncSession:
        """Use the caller's transaction session if given, else our own."""
        return session if session is not None else self.session

    def _column(self, field_name: str) -> Any:
        column = getattr(self.model, field_name, None)
        if column is None:
            raise DatabaseError(
                f"{self._model_name} has no field '{field_name}'",
                error_code="UNKNOWN_FIELD",
            )
        return column

    def _select(self, include_deleted: bool = False) -> Select:
        query = select(self.model)
        for name in self.get_preloads():
            query = query.options(selectinload(self._column(name)))
        if self._soft_delete and not include_deleted:
            query = query.where(self.model.deleted_at.is_(None))
        return query

    async def _first(self, query: Select, session: AsyncSession) -> Optional[ModelType]:
        result = await session.execute(query.limit(1))
        return result.scalars().first()

    async def find_all(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[ModelType]:
        """Get all model instances with optional pagination.

        Returns:
            List of model instances (empty if none)
        """
        logger.debug(
            f"{self._model_name}: Finding all with limit={limit}, offset={offset}"
        )
        try:
            query = self._select()
            if limit is not None:
                query = query.limit(limit)
            if offset is not None:
                query = query.offset(offset)
            result = await self.session.execute(query)
            instances = list(result.scalars().all())
            logger.debug(f"{self._model_name}: Found {len(instances)} instances")
            return instances
        except SQLAlchemyError as e:
            logger.error(f"{self._model_name}: Database error during find_all: {e}")
            raise DatabaseError(
                f"Failed to find all {self._model_name}: {e}", original=e
            ) from e

    async def find_by_id(self, id: Any) -> Optional[ModelType]:
        """Get model instance by primary key.

        Returns:
            Model instance or None if not found (or soft-deleted)
        """
        logger.debug(f"{self._model_name}: Finding id={id}")
        try:
            instance = await self._first(self._select().where(self.model.id == id), self.session)
            if instance is None:
                logger.debug(f"{self._model_name}: Not found id={id}")
            return instance
        except SQLAlchemyError as e:
            logger.error(f"{self._model_name}: Database error during find_by_id: {e}")
            raise DatabaseError(
                f"Failed to get {self._model_name} id={id}: {e}", original=e
            ) from e

    async def get_or_raise(self, id: Any) -> ModelType:
        """Get model instance by ID, raise exception if not found.

        Raises:
            RepositoryNotFoundError: If instance not found
        """
        instance = await self.find_by_id(id)
        if instance is None:
            logger.warning(f"{self._model_name}: Not found id={id}")
            raise RepositoryNotFoundError(
                f"{self._model_name} with id={id} not found"
            )
        return instance

    async def first_by_key(self, key: str, value: Any) -> Optional[ModelType]:
        """First instance whose ``key`` field equals ``value``, or None."""
        logger.debug(
            f"{self._model_name}: First by {key}={self._sanitize_value(value)}"
        )
        query = self._select().where(self._column(key) == value)
        try:
            return await self._first(query, self.session)
        except SQLAlchemyError as e:
            logger.error(f"{self._model_name}: Database error during first_by_key: {e}")
            raise DatabaseError(
                f"Failed to get {self._model_name} by {key}: {e}", original=e
            ) from e

    async def find_all_by_key(
        self, key: str, value: Any, limit: Optional[int] = None
    ) -> List[ModelType]:
        """All instances whose ``key`` field equals ``value``."""
        logger.debug(
            f"{self._model_name}: Listing by {key}={self._sanitize_value(value)}"
        )
        query = self._select().where(self._column(key) == value)
        if limit is not None:
            query = query.limit(limit)
        try:
            result = await self.session.execute(query)
            instances = list(result.scalars().all())
            logger.debug(f"{self._model_name}: Found {len(instances)} matches")
            return instances
        except SQLAlchemyError as e:
            logger.error(f"{self._model_name}: Database error during find_all_by_key: {e}")
            raise DatabaseError(
                f"Failed to list {self._model_name} by {key}: {e}", original=e
            ) from e

    async def create(
        self,
        entity: Optional[ModelType] = None,
        session: Optional[AsyncSession] = None,
        **kwargs: Any,
    ) -> ModelType:
        """Insert ``entity`` (or a new instance built from kwargs).

        Returns:
            Created model instance with ID

        Raises:
            RepositoryConflictError: Constraint violation (duplicate, etc.)
            DatabaseError: Other database errors
        """
        db = self.transaction_check(session)
        instance = entity if entity is not None else self.model(**kwargs)
        logger.debug(
            f"{self._model_name}: Creating with params={self._sanitize_params(kwargs)}"
        )
        try:
            db.add(instance)
            await db.flush()
            await db.refresh(instance)
            logger.info(f"{self._model_name}: Created id={instance.id}")
            return instance
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"{self._model_name}: Integrity error during create: {e}")
            raise RepositoryConflictError(
                f"Failed to create {self._model_name}: constraint violation", original=e
            ) from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"{self._model_name}: Database error during create: {e}")
            raise DatabaseError(
                f"Failed to create {self._model_name}: {e}", original=e
            ) from e

    async def update(
        self,
        id: Any,
        session: Optional[AsyncSession] = None,
        **kwargs: Any,
    ) -> ModelType:
        """Update fields of the instance with ``id``.

        Returns:
            Updated model instance

        Raises:
            RepositoryNotFoundError: If instance not found
            RepositoryConflictError: Constraint violation
            DatabaseError: Other database errors
        """
        db = self.transaction_check(session)
        logger.debug(
            f"{self._model_name}: Updating id={id} with params={self._sanitize_params(kwargs)}"
        )
        try:
            instance = await self._first(self._select().where(self.model.id == id), db)
            if instance is None:
                logger.warning(f"{self._model_name}: Not found for update id={id}")
                raise RepositoryNotFoundError(
                    f"{self._model_name} with id={id} not found"
                )
            for field_name, value in kwargs.items():
                self._column(field_name)
                setattr(instance, field_name, value)
            await db.flush()
            await db.refresh(instance)
            logger.info(f"{self._model_name}: Updated id={id}")
            return instance
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"{self._model_name}: Integrity error during update: {e}")
            raise RepositoryConflictError(
                f"Failed to update {self._model_name} id={id}: constraint violation",
                original=e,
            ) from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"{self._model_name}: Database error during update: {e}")
            raise DatabaseError(
                f"Failed to update {self._model_name} id={id}: {e}", original=e
            ) from e

    async def delete(self, id: Any, session: Optional[AsyncSession] = None) -> bool:
        """Delete instance by ID (soft delete when the model supports it).

        Returns:
            True if deleted, False if not found
        """
        db = self.transaction_check(session)
        logger.debug(f"{self._model_name}: Deleting id={id}")
        try:
            instance = await self._first(self._select().where(self.model.id == id), db)
            if instance is None:
                logger.debug(f"{self._model_name}: Not found for delete id={id}")
                return False

            if self._soft_delete:
                instance.deleted_at = utcnow()
            else:
                await db.delete(instance)
            await db.flush()
            logger.info(
                f"{self._model_name}: Deleted id={id}",
                extra={"soft_delete": self._soft_delete},
            )
            return True
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"{self._model_name}: Database error during delete: {e}")
            raise DatabaseError(
                f"Failed to delete {self._model_name} id={id}: {e}", original=e
            ) from e

    async def restore(self, id: Any, session: Optional[AsyncSession] = None) -> bool:
        """Undo a soft delete.

        Returns:
            True if a deleted instance was restored, False otherwise

        Raises:
            DatabaseError: Model does not support soft delete
        """
        if not self._soft_delete:
            raise DatabaseError(
                f"{self._model_name} does not support soft delete",
                error_code="SOFT_DELETE_UNSUPPORTED",
            )
        db = self.transaction_check(session)
        logger.debug(f"{self._model_name}: Restoring id={id}")
        try:
            query = self._select(include_deleted=True).where(
                self.model.id == id, self.model.deleted_at.is_not(None)
            )
            instance = await self._first(query, db)
            if instance is None:
                return False
            instance.deleted_at = None
            await db.flush()
            logger.info(f"{self._model_name}: Restored id={id}")
            return True
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"{self._model_name}: Database error during restore: {e}")
            raise DatabaseError(
                f"Failed to restore {self._model_name} id={id}: {e}", original=e
            ) from e

    async def count(self) -> int:
        """Count live instances using SQL COUNT."""
        logger.debug(f"{self._model_name}: Counting instances")
        try:
            query = select(func.count()).select_from(self.model)
            if self._soft_delete:
                query = query.where(self.model.deleted_at.is_(None))
            result = await self.session.execute(query)
            return result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"{self._model_name}: Database error during count: {e}")
            raise DatabaseError(
                f"Failed to count {self._model_name}: {e}", original=e
            ) from e

    def _sanitize_params(self, params: dict) -> dict:
        """Sanitize parameters for logging (remove sensitive data)."""
        sensitive_keys = {"password", "token", "api_key", "secret"}
        return {
            key: "***REDACTED***" if key.lower() in sensitive_keys else value
            for key, value in params.items()
        }

    def _sanitize_value(self, value: Any) -> Any:
        """Sanitize single value for logging."""
        if isinstance(value, str) and len(value) > 100:
            return value[:100] + "..."
        return value
