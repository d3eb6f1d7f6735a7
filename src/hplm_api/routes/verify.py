"""Audit record verification endpoint."""

from fastapi import APIRouter

from hplm.canon import CanonicalEncodingError
from hplm.engine import compute_integrity_hash, verify_record
from hplm.models import AUDIT_FIELDS

from hplm_api.schemas.requests import VerifyRequest
from hplm_api.schemas.responses import VerifyResponse

router = APIRouter(tags=["Verification"])


@router.post("/verify", response_model=VerifyResponse)
async def verify_audit_record(request: VerifyRequest):
    """
    Verify an exported audit record.

    Recomputes the integrity hash from the record's own fields. This
    answers: "Is this record exactly what the engine sealed?"
    """
    record = request.record
    stored = record.get("integrity_hash")
    stored = stored if isinstance(stored, str) else None

    missing = [name for name in AUDIT_FIELDS if name not in record]
    if missing:
        return VerifyResponse(
            valid=False,
            integrity_hash=stored,
            reason=f"Record is missing fields: {', '.join(missing)}",
        )

    try:
        recomputed = compute_integrity_hash(record)
    except CanonicalEncodingError as e:
        return VerifyResponse(valid=False, integrity_hash=stored, reason=str(e))

    valid = verify_record(record)
    return VerifyResponse(
        valid=valid,
        integrity_hash=stored,
        recomputed_hash=recomputed,
        reason=None if valid else "Integrity hash does not match record content",
    )
