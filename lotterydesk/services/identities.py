from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..db import session_scope
from ..errors import IdentityStoreError, ValidationError
from ..models import User

logger = logging.getLogger("lotterydesk.identities")

PROFILE_FIELDS = {
    "email": "email",
    "fullName": "full_name",
    "full_name": "full_name",
    "phone": "phone",
}


@dataclass(frozen=True)
class Profile:
    """User-supplied profile data; ``email`` is the natural key.

    ``supplied`` names the optional fields the caller actually sent, so a
    refresh only touches those.
    """

    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    supplied: FrozenSet[str] = frozenset()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Profile":
        if not isinstance(data, Mapping):
            raise ValidationError("userInformation must be an object")
        values: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            target = PROFILE_FIELDS.get(key)
            if target is None:
                extra[key] = value
            else:
                values[target] = value
        email = values.pop("email", None)
        if not isinstance(email, str) or "@" not in email:
            raise ValidationError("userInformation.email is required")
        return cls(
            email=email.strip().lower(),
            attributes=extra,
            supplied=frozenset(values),
            **values,
        )


@dataclass(frozen=True)
class IdentityRef:
    id: str
    email: str
    full_name: Optional[str]

    def display_name(self) -> str:
        return f"{self.full_name} ({self.email})"


def _apply_profile(user: User, profile: Profile) -> None:
    user.email = profile.email
    if "full_name" in profile.supplied:
        user.full_name = profile.full_name
    if "phone" in profile.supplied:
        user.phone = profile.phone
    attributes = user.get_attributes()
    attributes.update(profile.attributes)
    user.set_attributes(attributes)


def _to_ref(user: User) -> IdentityRef:
    return IdentityRef(id=user.id, email=user.email, full_name=user.full_name)


class IdentityRepository:
    def resolve(self, profile) -> IdentityRef:
        """Find the user by email, creating or refreshing the stored profile."""
        if not isinstance(profile, Profile):
            profile = Profile.from_mapping(profile)

        try:
            try:
                return self._upsert(profile)
            except IntegrityError:
                # Another request created the same email first; update it instead.
                logger.debug("Concurrent identity insert for %s; retrying as update", profile.email)
                return self._upsert(profile)
        except SQLAlchemyError as exc:
            logger.exception("Identity store failed for %s", profile.email)
            raise IdentityStoreError(f"Unable to resolve user {profile.email}: {exc}") from exc

    def _upsert(self, profile: Profile) -> IdentityRef:
        with session_scope() as session:
            user = session.query(User).filter(User.email == profile.email).one_or_none()
            if user is None:
                user = User()
                _apply_profile(user, profile)
                session.add(user)
                logger.info("Created user %s", profile.email)
            else:
                _apply_profile(user, profile)
            session.flush()
            return _to_ref(user)
