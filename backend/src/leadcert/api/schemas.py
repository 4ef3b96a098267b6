"""Pydantic schemas for the proxy envelope and certification records."""

from __future__ import annotations

from datetime import datetime
from datetime import timezone
from typing import Any
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import model_validator


class ProxyMetadata(BaseModel):
    """Metadata attached to a successful envelope."""

    count: int
    timestamp: str
    query: Optional[str] = None


class ProxyEnvelope(BaseModel):
    """Normalized proxy response.

    ``success=True`` requires ``data`` and forbids ``error``;
    ``success=False`` forbids ``data``.
    """

    success: bool
    data: Optional[List[Any]] = None
    metadata: Optional[ProxyMetadata] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_success_invariant(self) -> ProxyEnvelope:
        if self.success:
            if self.error is not None:
                raise ValueError("successful envelope cannot carry an error")
            if self.data is None:
                raise ValueError("successful envelope requires data")
        elif self.data is not None:
            raise ValueError("failed envelope cannot carry data")
        return self

    @classmethod
    def ok(
        cls,
        features: List[Any],
        query: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ProxyEnvelope:
        timestamp = (now or datetime.now(timezone.utc)).isoformat()
        return cls(
            success=True,
            data=features,
            metadata=ProxyMetadata(
                count=len(features), timestamp=timestamp, query=query
            ),
        )

    @classmethod
    def failure(cls, error: str) -> ProxyEnvelope:
        return cls(success=False, error=error)

    def to_body(self) -> dict[str, Any]:
        """Serialize without the absent optional members.

        Only envelope members are pruned; ``None`` values inside upstream
        attributes pass through untouched.
        """
        body: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            body["data"] = self.data
        if self.metadata is not None:
            body["metadata"] = self.metadata.model_dump(exclude_none=True)
        if self.error is not None:
            body["error"] = self.error
        return body


class CertificationRecord(BaseModel):
    """Attributes of one lead certification feature.

    The upstream layer has been published under more than one schema, so
    unknown fields are kept and both account number spellings are accepted.
    Values are typed loosely so a drifted column type does not fail the
    whole record. Dates are epoch milliseconds as returned by ArcGIS.
    """

    model_config = ConfigDict(extra="allow")

    opa_account: Optional[Any] = None
    opa_account_num: Optional[Any] = None
    address: Optional[Any] = None
    zip_code: Optional[Any] = None
    lhhp_certification_status: Optional[Any] = None
    lhhp_status_type: Optional[Any] = None
    lhhp_cert_date: Optional[Any] = None
    lhhp_cert_expiration_date: Optional[Any] = None
    lhhp_status_details: Optional[Any] = None

    @property
    def account_number(self) -> Optional[str]:
        value = self.opa_account or self.opa_account_num
        return str(value) if value not in (None, "") else None

    @property
    def is_exempt(self) -> bool:
        return self.lhhp_certification_status == "Exempt"
