"""Schemas for scam scans."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator

from .common import CamelModel, EthereumAddress, OptionalAddress, OptionalEmail, OptionalText


class ScanRequest(CamelModel):
    """Scenario text and/or addresses to assess.

    At least one of the scenario or an address must be present.
    """

    scenario: OptionalText = None
    suspicious_address: OptionalAddress = None
    user_address: OptionalAddress = None
    extracted_addresses: list[EthereumAddress] = Field(default_factory=list)
    scan_type: Literal["basic", "advanced"] = "basic"
    email: OptionalEmail = None

    @model_validator(mode="after")
    def _require_input(self) -> ScanRequest:
        if not (
            self.scenario
            or self.suspicious_address
            or self.user_address
            or self.extracted_addresses
        ):
            raise ValueError(
                "At least one of: scenario, suspiciousAddress, userAddress, "
                "or extractedAddresses is required"
            )
        return self


class ScanResponse(CamelModel):
    risk_level: str
    summary: str
    red_flags: list[str] = Field(default_factory=list)
    safety_tips: list[str] = Field(default_factory=list)
    address_analysis: str | None = None
    on_chain_data: str | None = None
    is_admin: bool | None = None
