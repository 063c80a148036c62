from typing import Generic, TypeVar, Type, Optional, List, Any, Dict
from sqlalchemy.orm import Session
from sqlalchemy import select
from app.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """
    Generic CRUD class with owner isolation via explicit owner_id.

    Write methods only flush. Committing is left to the caller so several
    writes can be grouped into one transaction with ``run_transaction``.

    Type Parameters:
        ModelType: SQLAlchemy model class
    """

    def __init__(self, model: Type[ModelType]):
        """
        Initialize CRUD object with model class.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model

    def get(self, db: Session, id: int, owner_id: int) -> Optional[ModelType]:
        """
        Retrieve a single record by ID with owner filtering.

        Args:
            db: Database session
            id: Record ID
            owner_id: Owner ID for isolation

        Returns:
            Model instance or None if not found or doesn't belong to owner
        """
        stmt = select(self.model).where(
            self.model.id == id,
            self.model.owner_id == owner_id
        )
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def get_multi(
        self,
        db: Session,
        *,
        skip: int = 0,
        limit: int = 100,
        owner_id: int
    ) -> List[ModelType]:
        """
        Retrieve multiple records with pagination and owner filtering.
        """
        stmt = select(self.model).where(
            self.model.owner_id == owner_id
        ).offset(skip).limit(limit)
        result = db.execute(stmt)
        return list(result.scalars().all())

    def create(self, db: Session, *, obj_in: Dict[str, Any]) -> ModelType:
        """
        Add a new record and flush it so generated IDs are available.

        Args:
            db: Database session
            obj_in: Column values

        Returns:
            Pending model instance (committed by the caller)
        """
        db_obj = self.model(**obj_in)
        db.add(db_obj)
        db.flush()
        return db_obj

    def update(
        self,
        db: Session,
        *,
        db_obj: ModelType,
        obj_in: Dict[str, Any]
    ) -> ModelType:
        """
        Update an existing record and flush.

        Note: This method assumes the db_obj was already retrieved using
        get() or similar method, which ensures owner isolation.
        """
        for field, value in obj_in.items():
            setattr(db_obj, field, value)

        db.add(db_obj)
        db.flush()
        return db_obj
