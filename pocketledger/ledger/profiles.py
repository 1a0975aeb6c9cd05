"""
Profile Store

Supplies each user's currency and category list. Category ids are
free-form strings; bill items and transactions reference them by
convention.
"""

import re
from typing import Optional
from uuid import UUID, uuid4

from pocketledger.models.audit import AuditEventType
from pocketledger.models.ledger import Category, UserProfile
from pocketledger.ledger.base import LedgerService
from pocketledger.ledger.paths import profile_path
from pocketledger.services.storage import SERVER_TIMESTAMP, NotFoundError
from pocketledger.validation import LedgerValidationError, require_text


DEFAULT_CATEGORIES = [
    Category(id="food", name="Food"),
    Category(id="transport", name="Transport"),
    Category(id="bills", name="Bills"),
    Category(id="shopping", name="Shopping"),
    Category(id="entertainment", name="Entertainment"),
    Category(id="health", name="Health"),
    Category(id="education", name="Education"),
    Category(id="other", name="Other"),
]


def custom_category_id(name: str) -> str:
    """c_<slug>_<5 random chars>, e.g. c_pet_food_3fa9c"""
    slug = re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")
    return f"c_{slug}_{uuid4().hex[:5]}"


class ProfileStore(LedgerService):
    """Reads and maintains users/{uid} profile documents."""

    entity_type = "profile"

    async def get_profile(self, uid: str) -> UserProfile:
        """
        Load a user's profile.

        Raises:
            NotFoundError: If the profile doesn't exist
        """
        doc = await self._store.get(profile_path(uid))
        if doc is None:
            raise NotFoundError(f"Profile not found: {uid}")
        return UserProfile.from_document(doc.id, doc.data)

    async def ensure_profile(
        self,
        uid: str,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
        currency: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> UserProfile:
        """Return the profile, creating it with default categories if missing."""
        path = profile_path(uid)
        doc = await self._store.get(path)
        if doc is not None:
            return UserProfile.from_document(doc.id, doc.data)

        profile = UserProfile(
            id=uid,
            email=email,
            display_name=(display_name or "").strip(),
            currency=(currency or "").strip() or self._settings.default_currency,
            categories=list(DEFAULT_CATEGORIES),
        )
        await self._store.set(path, {
            **profile.to_document(exclude={"created_at", "updated_at"}),
            "uid": uid,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        })
        await self._audit.log_record_written(
            event_type=AuditEventType.PROFILE_CREATED,
            owner_id=uid,
            entity_type=self.entity_type,
            entity_id=uid,
            description="Profile created with default categories",
            details={"currency": profile.currency},
            correlation_id=correlation_id,
        )
        return await self.get_profile(uid)

    async def category_ids(self, uid: str) -> set[str]:
        profile = await self.get_profile(uid)
        return profile.category_ids

    async def add_custom_category(
        self,
        uid: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Category:
        """
        Add a user-defined category.

        Names are unique case-insensitively; adding an existing name
        returns the existing category and writes nothing.

        Raises:
            LedgerValidationError: If the name is blank
            NotFoundError: If the profile doesn't exist
            PreconditionFailedError: If the category list changed concurrently
        """
        try:
            clean = require_text(name, "category name required", "name")
        except LedgerValidationError as e:
            await self._log_rejection(uid, e, correlation_id)
            raise

        path = profile_path(uid)
        doc = await self._store.get(path)
        if doc is None:
            raise NotFoundError(f"Profile not found: {uid}")
        profile = UserProfile.from_document(doc.id, doc.data)
        for category in profile.categories:
            if category.name.lower() == clean.lower():
                return category

        category = Category(id=custom_category_id(clean), name=clean)
        # Compare against the raw stored list, not the parsed models
        current = list(doc.data.get("categories") or [])

        batch = self._store.batch()
        batch.require_field(path, "categories", current)
        batch.update(path, {
            "categories": current + [category.model_dump()],
            "updatedAt": SERVER_TIMESTAMP,
        })
        await self._commit(batch, "add_custom_category", uid, correlation_id)

        await self._audit.log_record_written(
            event_type=AuditEventType.CATEGORY_ADDED,
            owner_id=uid,
            entity_type=self.entity_type,
            entity_id=uid,
            description=f"Category added: {clean}",
            details={"category_id": category.id},
            correlation_id=correlation_id,
        )
        return category
