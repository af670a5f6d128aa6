"""
Shared repository plumbing.

Every repository is bound to one UnitOfWork and reads and writes through
its session. Mutators refuse to run outside an open transaction and flush
immediately so constraint violations surface at the call site as
ConflictError and new rows get their ids.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError

from bakery_control.models.base import BaseModel
from bakery_control.services.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from bakery_control.utils.validators import validate_date_range


class BaseRepository:
    """CRUD operations common to every entity repository."""

    model = BaseModel
    entity_name = "Entity"

    #: Columns update() never copies from the caller's instance
    update_exclude: Sequence[str] = ()

    def __init__(self, uow):
        self._uow = uow

    @property
    def session(self):
        return self._uow.session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, entity_id: int) -> Optional[BaseModel]:
        return self.session.get(self.model, entity_id)

    def get_required(self, entity_id: int) -> BaseModel:
        """Like get_by_id() but raises NotFoundError when absent."""
        entity = self.get_by_id(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id)
        return entity

    def get_all(self) -> List[BaseModel]:
        return self.session.query(self.model).order_by(self.model.id).all()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _require_transaction(self, action: str) -> None:
        self._uow.require_transaction(f"{action} {self.entity_name}")

    def add(self, entity: BaseModel) -> BaseModel:
        """Insert ``entity`` and return it with its generated id."""
        self._require_transaction("Adding")
        self._prepare_new(entity)
        self.session.add(entity)
        self._flush(f"add {self.entity_name}")
        return entity

    def update(self, entity: BaseModel) -> BaseModel:
        """
        Copy the column values of ``entity`` onto the stored row.

        ``entity`` may be the persistent instance itself or a detached copy
        carrying the same id. Returns the persistent instance.
        """
        self._require_transaction("Updating")
        if entity.id is None:
            raise NotFoundError(self.entity_name, None)
        existing = self.get_required(entity.id)
        if existing is not entity:
            existing.copy_columns_from(entity, exclude=self.update_exclude)
        self._apply_update(existing, entity)
        self._flush(f"update {self.entity_name} {entity.id}")
        return existing

    def delete(self, entity_id: int) -> None:
        self._require_transaction("Deleting")
        entity = self.get_required(entity_id)
        self._check_can_delete(entity)
        self.session.delete(entity)
        self._flush(f"delete {self.entity_name} {entity_id}")

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _prepare_new(self, entity: BaseModel) -> None:
        """Fill defaults and validate a new entity before insert."""

    def _apply_update(self, existing: BaseModel, incoming: BaseModel) -> None:
        """Entity-specific work after columns have been copied."""

    def _check_can_delete(self, entity: BaseModel) -> None:
        """Raise ConflictError when ``entity`` must not be deleted."""

    def _flush(self, action: str) -> None:
        try:
            self.session.flush()
        except IntegrityError as e:
            raise ConflictError(f"Cannot {action}: {e.orig}", e) from e


def reconcile_children(owner_children: list, incoming: Iterable, factory, fields: Sequence[str]):
    """
    Make ``owner_children`` match ``incoming``.

    Children whose id is absent from ``incoming`` are removed; children
    matched by id get ``fields`` copied in place; incoming children without
    a known id are appended as new objects built by ``factory``.
    Incoming objects are only read, never attached.
    """
    incoming = list(incoming)
    incoming_ids = {child.id for child in incoming if child.id is not None}

    for child in list(owner_children):
        if child.id not in incoming_ids:
            owner_children.remove(child)

    existing_by_id = {child.id: child for child in owner_children}
    for child in incoming:
        target = existing_by_id.get(child.id) if child.id is not None else None
        if target is None:
            target = factory()
            owner_children.append(target)
        for field in fields:
            setattr(target, field, getattr(child, field))


def day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    """Half-open datetime range covering the days ``start`` through ``end``."""
    is_valid, error = validate_date_range(start, end)
    if not is_valid:
        raise InvalidArgumentError(error)
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)
