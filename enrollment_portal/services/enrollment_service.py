# enrollment_portal/services/enrollment_service.py
"""Enrollment use cases: validation, encryption and role-gated reads."""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as gcp_exceptions
from pydantic import ValidationError

from ..core.encryption import ENVELOPE_FIELDS, FIELDS_TO_ENCRYPT, FieldEncryptor, name_search_hash
from ..core.exceptions import (
    EnrollmentClosed, FormValidationError, InvalidUpdateError, NotFoundError, StoreUnavailable,
)
from ..core.security_utils import sanitize_search_term
from ..schemas.enrollment_schemas import enrollment_adapter
from ..schemas.user_schemas import User
from ..utils.validators import validate_enrollment_form
from .enrollment_repository import EnrollmentRepository
from .settings_service import SettingsService

logger = logging.getLogger(__name__)

# Set by the service on submit or by the encryptor, never by callers
PROTECTED_WRITE_FIELDS = ENVELOPE_FIELDS + ("id", "userId", "userEmail", "submittedAt")


def _reject_protected(changes: Dict[str, Any]):
    protected = sorted(set(changes) & set(PROTECTED_WRITE_FIELDS))
    if protected:
        raise InvalidUpdateError(f"Fields cannot be updated: {', '.join(protected)}")


def _schema_errors(exc: ValidationError) -> Dict[str, str]:
    errors = {}
    for error in exc.errors():
        field = next((str(part) for part in reversed(error["loc"]) if isinstance(part, str)), "type")
        if field in ("junior", "senior"):
            field = "type"
        errors.setdefault(field, error["msg"])
    return errors


class EnrollmentService:
    def __init__(
        self,
        repository: EnrollmentRepository,
        encryptor: FieldEncryptor,
        settings_service: SettingsService,
    ):
        self.repository = repository
        self.encryptor = encryptor
        self.settings_service = settings_service

    def parse_form(self, payload: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
        """Sanitize and check a submitted form.

        Rule failures and shape failures are reported together as one
        ``{field: message}`` map.
        """
        result = validate_enrollment_form(payload, today)
        errors = dict(result.errors)
        try:
            parsed = enrollment_adapter.validate_python(result.data)
        except ValidationError as e:
            for field, message in _schema_errors(e).items():
                errors.setdefault(field, message)
            parsed = None
        if errors:
            raise FormValidationError(errors)
        return parsed.model_dump(exclude_none=True)

    async def submit(self, payload: Dict[str, Any], user: User, today: Optional[date] = None) -> str:
        form = {**payload, "userId": user.uid, "userEmail": user.email}
        data = self.parse_form(form, today)

        if not await self.settings_service.is_open_for(data["type"]):
            raise EnrollmentClosed(f"{data['type'].capitalize()} high enrollment is currently closed")

        data["status"] = "submitted"
        try:
            enrollment_id = await self.repository.create(self.encryptor.encrypt_record(data))
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Enrollment submission by {user.uid} failed: {e}")
            raise StoreUnavailable("Could not save the enrollment, please try again") from e
        logger.info(f"Enrollment {enrollment_id} submitted by {user.uid}")
        return enrollment_id

    # ------------------------------------------------------------------ reads

    def present(self, record: Dict[str, Any], user: Optional[User]) -> Dict[str, Any]:
        """Decrypted record for admins, non-sensitive summary for everyone else."""
        role = user.role if user is not None else None
        if self.encryptor.can_decrypt(role):
            return self.encryptor.decrypt_record(record)
        return self.encryptor.summarize(record)

    def present_many(self, records: List[Dict[str, Any]], user: Optional[User]) -> List[Dict[str, Any]]:
        if self.encryptor.can_decrypt(user.role if user is not None else None):
            return self.encryptor.decrypt_batch(records)
        return [self.encryptor.summarize(r) for r in records]

    async def get(self, id: str, user: User) -> Dict[str, Any]:
        record = await self.repository.get_by_id(id)
        if record is None:
            raise NotFoundError("Enrollment", id)
        return self.present(record, user)

    async def list_for_user(self, user: User) -> List[Dict[str, Any]]:
        return self.present_many(await self.repository.get_by_user(user.uid), user)

    async def list_page(self, user: User, filters: Dict[str, Any], **pagination) -> Dict[str, Any]:
        page = await self.repository.paginate(filters, **pagination)
        return {**page, "items": self.present_many(page["items"], user)}

    async def search(self, user: User, term: str, filters: Dict[str, Any], page_size: int = 10) -> List[Dict[str, Any]]:
        """Search matches against decrypted values; results are presented per role."""
        matches = await self.repository.search(sanitize_search_term(term), filters, page_size, decode=self.encryptor.decrypt_record)
        if self.encryptor.can_decrypt(user.role):
            return matches
        return [self.encryptor.summarize(r) for r in matches]

    # ----------------------------------------------------------------- writes

    def _encrypt_changes(self, record: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
        """Encrypt protected fields in ``changes`` with the record's own IV."""
        iv = record.get("_iv")
        if not record.get("_encrypted") or not iv or not self.encryptor.enabled:
            return dict(changes)
        encrypted = dict(changes)
        for field in FIELDS_TO_ENCRYPT:
            value = changes.get(field)
            if value:
                encrypted[field] = self.encryptor.encrypt_value(str(value), iv)
        if changes.get("fullName"):
            encrypted["_searchHash"] = name_search_hash(str(changes["fullName"]))
        return encrypted

    async def _existing(self, id: str) -> Dict[str, Any]:
        record = await self.repository.get_by_id(id)
        if record is None:
            raise NotFoundError("Enrollment", id)
        return record

    async def update(self, id: str, changes: Dict[str, Any]):
        _reject_protected(changes)
        record = await self._existing(id)
        await self.repository.update(id, self._encrypt_changes(record, changes))

    async def update_status(self, id: str, status: str, rejection_reason: Optional[str] = None):
        await self._existing(id)
        extra = {"rejectionReason": rejection_reason} if rejection_reason else None
        await self.repository.update_status(id, status, extra)

    async def delete(self, id: str):
        await self._existing(id)
        await self.repository.delete(id)

    async def batch_update(self, updates: List[Dict[str, Any]]):
        prepared = []
        for item in updates:
            changes = item["data"]
            _reject_protected(changes)
            if any(changes.get(field) for field in FIELDS_TO_ENCRYPT):
                changes = self._encrypt_changes(await self._existing(item["id"]), changes)
            prepared.append((item["id"], changes))
        await self.repository.batch_update(prepared)
