"""On-chain address analysis built on Etherscan lookups.

``analyze`` never raises. Individual lookups that fail are logged and their
part of the report is left out; if nothing at all can be fetched the report
is replaced by a short fallback paragraph.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from crypto_clarity.db.time import Clock, utcnow
from crypto_clarity.services.addresses import (
    AddressRole,
    LabeledAddress,
    is_valid_address,
    shorten,
)
from crypto_clarity.services.etherscan import EtherscanClient, EtherscanError
from crypto_clarity.services.report import Report

logger = logging.getLogger(__name__)

T = TypeVar("T")

WEI_PER_ETH = Decimal(10) ** 18
LOW_BALANCE_ETH = Decimal("0.01")
NEW_ADDRESS_TX_THRESHOLD = 5
RECENT_TX_LIMIT = 5
HISTORY_SAMPLE = 100
TOKEN_SAMPLE = 10
ESTABLISHED_TX_COUNT = 50
ESTABLISHED_AGE_DAYS = 30
SECONDS_PER_DAY = 86400

# Lower-cased address -> public attribution.
KNOWN_ENTITIES: dict[str, str] = {
    "0xd8da6bf26964af9d7eed9e03e53415d37aa96045": "Vitalik Buterin",
    "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2": "WETH Token Contract",
    "0x7a250d5630b4cf539739df2c5dacb4c659f2488d": "Uniswap V2: Router",
    "0x7be8076f4ea4a4ad08075c2508e481d6c946d12b": "OpenSea: Marketplace",
    "0x3f5ce5fbfe3e9af3971dd833d26ba9b5c936f0be": "Binance: Hot Wallet",
    "0x28c6c06298d514db089934071355e5743bf21d60": "Binance: Cold Wallet",
    "0xa090e606e30bd747d4e6245a1517ebe430f0057e": "Binance: Hot Wallet 2",
}

PATTERN_NEW_ADDRESS = "New address with minimal transaction history"
PATTERN_CONTRACT = "This is a smart contract address, not a regular user wallet"
PATTERN_LOW_BALANCE = "Low or empty balance (less than 0.01 ETH)"
PATTERN_SAME_DESTINATION = "Multiple transactions to the same destination address"

INVALID_ADDRESS_TITLE = "Invalid Ethereum Address"
INVALID_ADDRESS_SUMMARY = "Invalid Ethereum address format."
BASIC_FALLBACK = (
    "Unable to retrieve on-chain data for this address. "
    "The Etherscan API may be unavailable or rate-limited."
)
DEEP_FALLBACK = (
    "Unable to retrieve detailed on-chain data. The Etherscan API may be "
    "unavailable or rate-limited. Please try again later."
)
UPSELL_TIP = (
    "**Tip**: Upgrade to premium for detailed transaction history, activity "
    "analysis, and comprehensive risk assessment."
)
UNVERIFIED_NOTE = (
    "**Security Note**: This contract is not verified on Etherscan. "
    "Exercise caution when interacting with unverified contracts."
)
UNVERIFIED_WARNING = (
    "**Security Warning**: This contract is unverified. Exercise extreme "
    "caution as you cannot inspect the code."
)

_ROLE_ORDER = (AddressRole.SUSPICIOUS, AddressRole.USER, AddressRole.EXTRACTED)


class AnalysisTier(str, Enum):
    BASIC = "basic"
    DEEP = "deep"


@dataclass
class AddressAnalysis:
    """Display report, model-facing summary and raw facts for one address."""

    address: str
    report: Report
    summary_for_prompt: str
    facts: dict[str, Any] = field(default_factory=dict)


@dataclass
class LabeledAnalysis:
    labeled: LabeledAddress
    analysis: AddressAnalysis

    @property
    def section_title(self) -> str:
        return self.labeled.section_title


def wei_to_eth(wei: int) -> Decimal:
    return Decimal(wei) / WEI_PER_ETH


def format_eth(wei: int) -> str:
    if wei == 0:
        return "0 ETH"
    eth = wei_to_eth(wei)
    if eth < Decimal("0.0001"):
        return "< 0.0001 ETH"
    return f"{eth:.4f} ETH"


def format_day(timestamp: int) -> str:
    moment = datetime.fromtimestamp(timestamp, UTC)
    return f"{moment:%b} {moment.day}, {moment.year}"


def _timestamp(tx: dict[str, Any]) -> int | None:
    try:
        return int(tx["timeStamp"])
    except (KeyError, TypeError, ValueError):
        return None


def detect_suspicious_patterns(
    tx_count: int | None,
    balance_wei: int | None,
    is_contract: bool | None,
    recent: Sequence[dict[str, Any]] | None,
) -> list[str]:
    """Return the risk indicators that apply; unknown inputs are skipped."""
    patterns: list[str] = []
    if tx_count is not None and tx_count < NEW_ADDRESS_TX_THRESHOLD:
        patterns.append(PATTERN_NEW_ADDRESS)
    if is_contract:
        patterns.append(PATTERN_CONTRACT)
    if balance_wei is not None and wei_to_eth(balance_wei) < LOW_BALANCE_ETH:
        patterns.append(PATTERN_LOW_BALANCE)
    if recent and len(recent) > 2:
        destinations = {str(tx.get("to") or "").lower() for tx in recent}
        if len(destinations) == 1:
            patterns.append(PATTERN_SAME_DESTINATION)
    return patterns


class OnChainAnalyzer:
    """Build per-address reports at the basic or deep tier."""

    def __init__(self, client: EtherscanClient, *, clock: Clock = utcnow) -> None:
        self.client = client
        self.clock = clock

    async def _attempt(self, what: str, address: str, call: Awaitable[T]) -> T | None:
        try:
            return await call
        except EtherscanError as exc:
            logger.warning("Etherscan %s lookup failed for %s: %s", what, address, exc)
            return None

    async def identify(self, address: str, is_contract: bool | None) -> tuple[str, bool]:
        """Return ``(name_tag, verified)``.

        Known entities are answered from the local table. Only unknown
        contracts are checked for verification and a source-code name.
        """
        known = KNOWN_ENTITIES.get(address.lower())
        if known:
            return known, False
        if not is_contract:
            return "", False

        verified = await self._attempt(
            "verification", address, self.client.is_verified_contract(address)
        )
        if not verified:
            return "", False

        source = await self._attempt("source code", address, self.client.get_source_code(address))
        name = ""
        if source:
            name = source.get("ContractName") or ""
            implementation = source.get("Implementation")
            if implementation:
                name = f"{name} (Proxy for {implementation})".strip()
        return name, True

    async def analyze(
        self, address: str, tier: AnalysisTier = AnalysisTier.BASIC
    ) -> AddressAnalysis:
        address = (address or "").strip()
        if not is_valid_address(address):
            return self._invalid(address)
        try:
            if tier is AnalysisTier.DEEP:
                return await self._analyze_deep(address)
            return await self._analyze_basic(address)
        except Exception:
            logger.exception("On-chain analysis failed for %s", address)
            return self._fallback(address, KNOWN_ENTITIES.get(address.lower(), ""), tier)

    async def analyze_many(
        self, addresses: Sequence[LabeledAddress], tier: AnalysisTier = AnalysisTier.BASIC
    ) -> list[LabeledAnalysis]:
        """Analyze all addresses concurrently, returned in precedence order."""
        ordered = sorted(addresses, key=lambda item: _ROLE_ORDER.index(item.role))
        results = await asyncio.gather(*(self.analyze(item.address, tier) for item in ordered))
        return [LabeledAnalysis(item, result) for item, result in zip(ordered, results)]

    async def _analyze_basic(self, address: str) -> AddressAnalysis:
        is_contract, balance = await asyncio.gather(
            self._attempt("code", address, self.client.is_contract(address)),
            self._attempt("balance", address, self.client.get_balance_wei(address)),
        )
        name_tag, verified = await self.identify(address, is_contract)
        if is_contract is None and balance is None:
            return self._fallback(address, name_tag, AnalysisTier.BASIC)

        title = f"Known Address: {name_tag}" if name_tag else f"Address {shorten(address)}"
        report = Report(title)
        lines = [f"**Address**: {address}", f"**Identity**: {name_tag or 'Unknown'}"]
        if is_contract is not None:
            lines.append(f"**Type**: {_kind(is_contract)}")
        if balance is not None:
            lines.append(f"**Balance**: {format_eth(balance)}")
        report.add("Basic Information", lines)

        unknown_contract = bool(is_contract) and address.lower() not in KNOWN_ENTITIES
        if unknown_contract:
            report.add(
                "Contract Information",
                [f"**Verified**: {_yes_no(verified)}"],
                [] if verified else [UNVERIFIED_NOTE],
            )
        report.add(None, notes=[UPSELL_TIP])

        summary = [f"Address Analysis for {address}:", ""]
        if name_tag:
            summary += [f"IMPORTANT: This address belongs to {name_tag}.", ""]
        if balance is not None:
            summary.append(f"- Balance: {format_eth(balance)}")
        if is_contract is not None:
            summary.append(f"- Type: {_kind(is_contract)}")
        if unknown_contract:
            summary.append(f"- Contract Verified: {_yes_no(verified)}")

        facts = {
            "address": address,
            "valid": True,
            "nameTag": name_tag,
            "isContract": is_contract,
            "balanceWei": balance,
            "verified": verified if unknown_contract else None,
        }
        return AddressAnalysis(address, report, "\n".join(summary), facts)

    async def _analyze_deep(self, address: str) -> AddressAnalysis:
        is_contract, balance, nonce, first_txs, recent, tokens, internals = await asyncio.gather(
            self._attempt("code", address, self.client.is_contract(address)),
            self._attempt("balance", address, self.client.get_balance_wei(address)),
            self._attempt("nonce", address, self.client.get_transaction_count(address)),
            self._attempt(
                "first transaction",
                address,
                self.client.get_transactions(address, limit=1, sort="asc"),
            ),
            self._attempt(
                "recent transactions",
                address,
                self.client.get_transactions(address, limit=RECENT_TX_LIMIT, sort="desc"),
            ),
            self._attempt(
                "token transfers",
                address,
                self.client.get_token_transfers(address, limit=HISTORY_SAMPLE),
            ),
            self._attempt(
                "internal transactions",
                address,
                self.client.get_internal_transactions(address, limit=HISTORY_SAMPLE),
            ),
        )
        name_tag, verified = await self.identify(address, is_contract)
        if all(value is None for value in (is_contract, balance, nonce, recent)):
            return self._fallback(address, name_tag, AnalysisTier.DEEP)

        normal_count = nonce if nonce is not None else (len(recent) if recent is not None else None)
        first_ts = _timestamp(first_txs[0]) if first_txs else None
        last_ts = _timestamp(recent[0]) if recent else None
        now_ts = int(self.clock().timestamp())
        days_since_first = (now_ts - first_ts) // SECONDS_PER_DAY if first_ts else None

        unknown_contract = bool(is_contract) and address.lower() not in KNOWN_ENTITIES
        contract_info = await self._contract_info(address, verified) if unknown_contract else None
        patterns = detect_suspicious_patterns(normal_count, balance, is_contract, recent)

        title = (
            f"Known Address: {name_tag}"
            if name_tag
            else f"Blockchain Analysis: {shorten(address)}"
        )
        report = Report(title)

        summary_lines = [f"**Address**: {address}"]
        if name_tag:
            summary_lines.append(f"**Identity**: {name_tag}")
        if is_contract is not None:
            summary_lines.append(f"**Type**: {_kind(is_contract)}")
        if balance is not None:
            summary_lines.append(f"**Balance**: {format_eth(balance)}")
        if normal_count is not None:
            summary_lines.append(f"**Normal Transactions**: {normal_count:,}")
        if tokens is not None:
            summary_lines.append(f"**Token Transfers**: {_sampled(tokens)}")
        if internals is not None:
            summary_lines.append(f"**Internal Transactions**: {_sampled(internals)}")
        report.add("Account Summary", summary_lines)

        if first_ts or last_ts:
            timeline = []
            if first_ts:
                timeline.append(f"**First Activity**: {format_day(first_ts)}")
            if last_ts:
                timeline.append(f"**Last Activity**: {format_day(last_ts)}")
            if first_ts and last_ts and last_ts - first_ts >= SECONDS_PER_DAY:
                timeline.append(f"**Account Age**: ~ {(last_ts - first_ts) // SECONDS_PER_DAY} days")
            report.add("Activity Timeline", timeline)

        if contract_info is not None:
            contract_lines = [
                f"**Verified**: {_yes_no(contract_info['isVerified'])}",
                f"**Creator**: {contract_info['contractCreator']}",
            ]
            if contract_info["creationTimestamp"]:
                contract_lines.append(f"**Deployed**: {contract_info['creationTimestamp']}")
            creation_tx = contract_info["creationTransaction"]
            if creation_tx:
                contract_lines.append(f"**Creation Tx**: {shorten(creation_tx, 8, 6)}")
            notes = [] if contract_info["isVerified"] else [UNVERIFIED_WARNING]
            report.add("Contract Information", contract_lines, notes)

        total_activity = sum(
            len(items) if isinstance(items, list) else (items or 0)
            for items in (normal_count, tokens, internals)
        )
        if patterns:
            report.add("Risk Indicators", patterns)
        elif is_contract is False and total_activity > ESTABLISHED_TX_COUNT:
            if days_since_first is not None and days_since_first > ESTABLISHED_AGE_DAYS:
                report.add(
                    "Stability Indicators",
                    [
                        f"This address has a substantial transaction history ({total_activity}+ transactions)",
                        f"This address has been active for {days_since_first}+ days",
                    ],
                )

        prompt = self._deep_prompt_summary(
            address,
            name_tag=name_tag,
            is_contract=is_contract,
            balance=balance,
            normal_count=normal_count,
            first_ts=first_ts,
            days_since_first=days_since_first,
            contract_info=contract_info,
            patterns=patterns,
            recent=recent or [],
            tokens=tokens or [],
        )
        facts = {
            "address": address,
            "valid": True,
            "nameTag": name_tag,
            "isContract": is_contract,
            "balanceWei": balance,
            "normalTxCount": normal_count,
            "tokenTxCount": len(tokens) if tokens is not None else None,
            "internalTxCount": len(internals) if internals is not None else None,
            "firstTxTimestamp": first_ts,
            "lastTxTimestamp": last_ts,
            "contractInfo": contract_info,
            "suspiciousPatterns": patterns,
        }
        return AddressAnalysis(address, report, prompt, facts)

    async def _contract_info(self, address: str, verified: bool) -> dict[str, Any]:
        creation = await self._attempt(
            "contract creation", address, self.client.get_contract_creation(address)
        )
        info: dict[str, Any] = {
            "isVerified": verified,
            "contractCreator": "Unknown",
            "creationTransaction": "",
            "creationTimestamp": None,
        }
        if not creation:
            return info

        info["contractCreator"] = creation.get("contractCreator") or "Unknown"
        tx_hash = creation.get("txHash") or ""
        info["creationTransaction"] = tx_hash
        if tx_hash:
            tx = await self._attempt("creation transaction", address, self.client.get_transaction(tx_hash))
            block_hex = (tx or {}).get("blockNumber")
            try:
                block_number = int(block_hex, 16) if block_hex else None
            except (TypeError, ValueError):
                logger.warning("Malformed block number %r for %s", block_hex, address)
                block_number = None
            if block_number is not None:
                timestamp = await self._attempt(
                    "block timestamp",
                    address,
                    self.client.get_block_timestamp(block_number),
                )
                if timestamp:
                    info["creationTimestamp"] = format_day(timestamp)
        return info

    def _deep_prompt_summary(
        self,
        address: str,
        *,
        name_tag: str,
        is_contract: bool | None,
        balance: int | None,
        normal_count: int | None,
        first_ts: int | None,
        days_since_first: int | None,
        contract_info: dict[str, Any] | None,
        patterns: list[str],
        recent: list[dict[str, Any]],
        tokens: list[dict[str, Any]],
    ) -> str:
        lines = [f"Address Analysis for {address}:", ""]
        if name_tag:
            lines += [f"IMPORTANT: This address belongs to {name_tag}.", ""]
        if balance is not None:
            lines.append(f"- Balance: {format_eth(balance)}")
        if normal_count is not None:
            lines.append(f"- Transaction Count: {normal_count:,}")
        if is_contract is not None:
            lines.append(f"- Type: {_kind(is_contract)}")
        if first_ts:
            lines.append(f"- First Transaction: {format_day(first_ts)}")
            lines.append(f"- Account Age: Approximately {days_since_first} days")
        if contract_info is not None:
            lines.append(f"- Contract Verified: {_yes_no(contract_info['isVerified'])}")
            lines.append(f"- Contract Creator: {contract_info['contractCreator']}")
            if contract_info["creationTimestamp"]:
                lines.append(f"- Contract Creation Date: {contract_info['creationTimestamp']}")

        if patterns:
            lines += ["", "Potential Risk Indicators:"]
            lines += [f"- {pattern}" for pattern in patterns]

        if recent:
            lines += ["", "Recent Transaction Summary:"]
            for index, tx in enumerate(recent[:RECENT_TX_LIMIT], start=1):
                lines.append(_describe_transaction(address, tx, index))

        if is_contract is False and tokens:
            counts = Counter(t.get("tokenSymbol") or "Unknown" for t in tokens[:TOKEN_SAMPLE])
            top = [symbol for symbol, _ in counts.most_common(5)]
            lines += ["", f"Most Frequent Tokens: {', '.join(top)}"]
        return "\n".join(lines)

    def _invalid(self, address: str) -> AddressAnalysis:
        report = Report(INVALID_ADDRESS_TITLE)
        report.add(
            None,
            [
                "The address provided does not appear to be a valid Ethereum address "
                "format. Please check for typos or formatting issues."
            ],
        )
        return AddressAnalysis(
            address, report, INVALID_ADDRESS_SUMMARY, {"address": address, "valid": False}
        )

    def _fallback(self, address: str, name_tag: str, tier: AnalysisTier) -> AddressAnalysis:
        if name_tag:
            report = Report(f"Known Address: {name_tag}")
            report.add(
                None,
                [
                    "Unable to retrieve additional on-chain data. However, this appears "
                    f"to be a known address associated with {name_tag}."
                ],
            )
            summary = (
                f"Unable to analyze address {address} due to an API error or rate limiting. "
                f"IMPORTANT: This address belongs to {name_tag}."
            )
        else:
            report = Report(f"Address {shorten(address)}")
            report.add(None, [DEEP_FALLBACK if tier is AnalysisTier.DEEP else BASIC_FALLBACK])
            summary = f"Unable to analyze address {address} due to an API error or rate limiting."
        facts = {"address": address, "valid": True, "nameTag": name_tag, "unavailable": True}
        return AddressAnalysis(address, report, summary, facts)


def _kind(is_contract: bool) -> str:
    return "Smart Contract" if is_contract else "Regular Wallet"


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def _sampled(items: list[Any]) -> str:
    count = len(items)
    return f"{count:,}+" if count >= HISTORY_SAMPLE else f"{count:,}"


def _describe_transaction(address: str, tx: dict[str, Any], index: int) -> str:
    sender = str(tx.get("from") or "")
    receiver = str(tx.get("to") or "")
    outgoing = sender.lower() == address.lower()
    try:
        value = format_eth(int(tx.get("value") or 0))
    except (TypeError, ValueError):
        value = "0 ETH"
    timestamp = _timestamp(tx)
    when = format_day(timestamp) if timestamp else "unknown date"
    if outgoing:
        line = f"- Outgoing TX #{index}: {value} on {when} to {shorten(receiver, 8, 6)}"
    else:
        line = f"- Incoming TX #{index}: {value} on {when} from {shorten(sender, 8, 6)}"
    function_name = tx.get("functionName")
    if function_name:
        line += f" (Function: {function_name.split('(')[0]})"
    return line
