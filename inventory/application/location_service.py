from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from inventory.core.logging_config import get_logger
from inventory.domain.errors import AlreadyExistsError, InvalidArgumentError, LocationNotFoundError
from inventory.domain.models import NAME_MAX_LENGTH, Location
from inventory.infrastructure.db import session_scope
from inventory.infrastructure.repositories import LocationRepository

logger = get_logger(__name__)

class LocationRegistryService:
    def __init__(self, session_factory: sessionmaker, repository: Optional[LocationRepository] = None,
                 default_timeout: Optional[float] = None):
        self._session_factory = session_factory
        self._locations = repository or LocationRepository()
        self._default_timeout = default_timeout

    def _timeout(self, timeout: Optional[float]) -> Optional[float]:
        return timeout if timeout is not None else self._default_timeout

    def create_location(self, name: str, timeout: Optional[float] = None) -> Location:
        name = (name or "").strip()
        if not name:
            raise InvalidArgumentError("location name is required")
        if len(name) > NAME_MAX_LENGTH:
            raise InvalidArgumentError(f"location name cannot be longer than {NAME_MAX_LENGTH} characters", name=name)

        with session_scope(self._session_factory, "create_location", self._timeout(timeout), name=name) as session:
            if self._locations.get_by_name(session, name) is not None:
                raise AlreadyExistsError(f"location with name {name} already exists", name=name)
            try:
                location = self._locations.create(session, name)
            except IntegrityError as exc:
                raise AlreadyExistsError(f"location with name {name} already exists", name=name) from exc

        logger.info(
            f"Location created: {name}",
            extra={'extra_fields': {'location_id': location.id, 'name': name}}
        )
        return location

    def get_by_name(self, name: str, timeout: Optional[float] = None) -> Location:
        with session_scope(self._session_factory, "get_location_by_name", self._timeout(timeout), name=name) as session:
            location = self._locations.get_by_name(session, name)
        if location is None:
            raise LocationNotFoundError(name=name)
        return location

    def get_by_id(self, location_id: int, timeout: Optional[float] = None) -> Location:
        with session_scope(self._session_factory, "get_location", self._timeout(timeout),
                           location_id=location_id) as session:
            return self.require(session, location_id)

    def list_locations(self, timeout: Optional[float] = None) -> List[Location]:
        with session_scope(self._session_factory, "list_locations", self._timeout(timeout)) as session:
            return self._locations.list(session)

    def require(self, session: Session, location_id: int) -> Location:
        """Existence check inside a caller's transaction."""
        location = self._locations.get_by_id(session, location_id)
        if location is None:
            raise LocationNotFoundError(location_id=location_id)
        return location
