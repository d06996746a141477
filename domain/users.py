"""
CLARK Entities - Users

A CLARK user: identity, profile fields, and the learning objects the user
authors.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from core.errors import InvalidEmail, InvalidUserField
from core.validation import is_valid_email, parse_timestamp, to_epoch_millis, truncate_to_millis, utc_now

if TYPE_CHECKING:
    from domain.entities import LearningObject

logger = logging.getLogger("clark.users")


class User:
    """
    A CLARK user.

    ``username`` is fixed at construction. An empty ``email`` means no
    address is on file; any other value must look like ``local@domain.tld``.
    """

    def __init__(
        self,
        username: str = "",
        name: str = "",
        email: str = "",
        organization: str = "",
        bio: str = "",
        *,
        email_verified: bool = False,
        created_at: Optional[Any] = None,
    ) -> None:
        if username is None:
            raise InvalidUserField("username", username)
        self._username = str(username).strip()
        self._name = ""
        self._email = ""
        self._organization = ""
        self._bio = ""
        self._email_verified = bool(email_verified)
        self._created_at: datetime = (
            parse_timestamp(created_at, field_name="createdAt")
            if created_at is not None
            else truncate_to_millis(utc_now())
        )
        self._objects: List["LearningObject"] = []
        self.extensions: Dict[str, Any] = {}

        self.name = name
        self.email = email
        self.organization = organization
        self.bio = bio

    @property
    def username(self) -> str:
        return self._username

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, name: str) -> None:
        self._name = self._clean("name", name)

    @property
    def email(self) -> str:
        return self._email

    @email.setter
    def email(self, email: str) -> None:
        if email is None:
            raise InvalidUserField("email", email)
        value = str(email).strip()
        if value and not is_valid_email(value):
            raise InvalidEmail(email)
        self._email = value

    @property
    def email_verified(self) -> bool:
        return self._email_verified

    @email_verified.setter
    def email_verified(self, verified: bool) -> None:
        self._email_verified = bool(verified)

    @property
    def organization(self) -> str:
        return self._organization

    @organization.setter
    def organization(self, organization: str) -> None:
        self._organization = self._clean("organization", organization)

    @property
    def bio(self) -> str:
        return self._bio

    @bio.setter
    def bio(self, bio: str) -> None:
        self._bio = self._clean("bio", bio)

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @staticmethod
    def _clean(field_name: str, value: Any) -> str:
        if value is None:
            raise InvalidUserField(field_name, value)
        return str(value).strip()

    # =========================================================================
    # AUTHORED OBJECTS
    # =========================================================================

    @property
    def objects(self) -> Tuple["LearningObject", ...]:
        return tuple(self._objects)

    def add_object(self) -> "LearningObject":
        """Create a blank learning object authored by this user."""
        from domain.entities import LearningObject

        learning_object = LearningObject(author=self)
        self._objects.append(learning_object)
        logger.debug("User %r now authors %d learning objects", self._username, len(self._objects))
        return learning_object

    def remove_object(self, index: int) -> "LearningObject":
        return self._objects.pop(index)

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.extensions)
        result.update({
            "username": self._username,
            "name": self._name,
            "email": self._email,
            "emailVerified": self._email_verified,
            "organization": self._organization,
            "bio": self._bio,
            "createdAt": to_epoch_millis(self._created_at),
        })
        return result

    @classmethod
    def instantiate(cls, bag: Mapping[str, Any]) -> "User":
        from domain.reconstruction import instantiate_user

        return instantiate_user(bag)

    def __repr__(self) -> str:
        return f"User(username={self._username!r}, name={self._name!r})"
