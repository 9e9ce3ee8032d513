"""Certificate minting.

A mint walks through ``resolved -> funded -> submitted -> confirmed -> recorded``.
Resolving ends with an atomic claim that flips the cert to ``pending``, so of two
overlapping requests only one ever reaches the ledger. The transaction digest is
computed before submission and stored on the claimed row; a crash between
submission and the final write leaves a marker that
:mod:`educhain.certs.reconcile` can settle instead of an on-chain certificate
with no local record.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from educhain.certs.reconcile import RECONCILED_MINTED, RECONCILED_PENDING, reconcile_cert
from educhain.certs.service import (
    CertContext,
    claim_cert,
    clear_pending,
    mark_minted,
    release_claim,
    resolve_cert,
    set_pending_digest,
)
from educhain.config import Settings
from educhain.ledger.client import LedgerError, SuiClient, execution_succeeded
from educhain.ledger.keys import Ed25519Keypair, InvalidKey, transaction_digest
from educhain.models.cert import MINT_PENDING

logger = logging.getLogger(__name__)


class MintState(str, Enum):
    RESOLVED = "resolved"
    FUNDED = "funded"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    RECORDED = "recorded"
    FAILED = "failed"


class MintError(Exception):
    status_code = 500
    public_message = "Failed to mint certificate"


class CertNotFound(MintError):
    status_code = 404
    public_message = "Certificate not found"


class AlreadyMinted(MintError):
    status_code = 409
    public_message = "Certificate already minted"


class MintInProgress(MintError):
    status_code = 409
    public_message = "Certificate mint already in progress"


class NoFundingAvailable(MintError):
    pass


class MintFailed(MintError):
    pass


@dataclass
class MintAttempt:
    cert_id: int
    course_id: int | None = None
    state: MintState | None = None
    failed_in: MintState | None = None
    gas_coin: str | None = None
    digest: str | None = None
    claimed: bool = False
    submitted: bool = False

    def advance(self, state: MintState):
        logger.info("cert %s: %s", self.cert_id, state.value)
        self.state = state


def add_one_year(dt: datetime) -> datetime:
    try:
        return dt.replace(year=dt.year + 1)
    except ValueError:
        # 29 February
        return dt.replace(year=dt.year + 1, day=28)


def to_millis(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


class CertMinter:
    def __init__(self, db: Session, ledger: SuiClient, settings: Settings, sleep=asyncio.sleep):
        self.db = db
        self.ledger = ledger
        self.settings = settings
        self._sleep = sleep

    async def mint(self, cert_id: int, student_email: str) -> MintAttempt:
        attempt = MintAttempt(cert_id=cert_id)
        try:
            return await self._run(attempt, student_email)
        except MintError as e:
            if e.status_code >= 500:
                logger.error("cert %s: mint failed after %s: %s", cert_id, self._state_name(attempt), e)
            self._fail(attempt)
            raise
        except (LedgerError, SQLAlchemyError, InvalidKey) as e:
            logger.exception("cert %s: mint failed after %s", cert_id, self._state_name(attempt))
            self._fail(attempt)
            raise MintFailed(str(e)) from e

    @staticmethod
    def _state_name(attempt: MintAttempt) -> str:
        return attempt.state.value if attempt.state else "start"

    def _fail(self, attempt: MintAttempt):
        attempt.failed_in = attempt.state
        attempt.state = MintState.FAILED
        self.db.rollback()
        if attempt.claimed and not attempt.submitted:
            # nothing reached the ledger, the cert can be minted again
            try:
                release_claim(self.db, attempt.cert_id)
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("cert %s: could not release claim, left for reconciliation", attempt.cert_id)

    async def _run(self, attempt: MintAttempt, student_email: str) -> MintAttempt:
        ctx = await self._resolve(attempt, student_email)
        if attempt.state == MintState.RECORDED:
            return attempt
        if not claim_cert(self.db, ctx.cert):
            raise AlreadyMinted() if ctx.cert.cert_hash else MintInProgress()
        attempt.claimed = True

        platform = self._platform_keypair()
        student_address = Ed25519Keypair.from_secret(ctx.student.address or "").address

        attempt.gas_coin = await self._acquire_gas_coin(platform.address)
        attempt.advance(MintState.FUNDED)

        tx_bytes = await self.ledger.move_call(
            signer=platform.address,
            package_id=self.settings.sui_package_id,
            module=self.settings.sui_module,
            function=self.settings.sui_function,
            arguments=self._call_arguments(ctx, student_address),
            gas=attempt.gas_coin,
            gas_budget=self.settings.sui_gas_budget,
        )
        signature = platform.sign_transaction(tx_bytes)
        attempt.digest = transaction_digest(tx_bytes)

        if not set_pending_digest(self.db, ctx.cert, attempt.digest):
            raise MintFailed(f"cert {attempt.cert_id} lost its claim before submission")

        # from here on the transaction may exist on chain
        attempt.submitted = True
        try:
            await self.ledger.execute_transaction(tx_bytes, signature)
            attempt.advance(MintState.SUBMITTED)
            tx = await self.ledger.wait_for_transaction(
                attempt.digest,
                timeout=self.settings.confirm_timeout,
                poll_interval=self.settings.confirm_poll_interval,
            )
        except LedgerError as e:
            logger.exception("cert %s: outcome of %s unknown, left pending", attempt.cert_id, attempt.digest)
            raise MintFailed(str(e)) from e

        if not execution_succeeded(tx):
            logger.error("cert %s: transaction %s failed on chain", attempt.cert_id, attempt.digest)
            clear_pending(self.db, ctx.cert)
            raise MintFailed(f"transaction {attempt.digest} failed")
        attempt.advance(MintState.CONFIRMED)

        if not mark_minted(self.db, ctx.cert, attempt.digest):
            raise MintFailed(f"cert {attempt.cert_id} was settled with another digest")
        attempt.advance(MintState.RECORDED)
        return attempt

    async def _resolve(self, attempt: MintAttempt, student_email: str) -> CertContext:
        ctx = resolve_cert(self.db, attempt.cert_id, student_email)
        if ctx is None:
            raise CertNotFound()
        attempt.course_id = ctx.course.id

        if ctx.cert.cert_hash:
            raise AlreadyMinted()

        if ctx.cert.mint_status == MINT_PENDING:
            outcome = await reconcile_cert(self.db, self.ledger, ctx.cert, self.settings.pending_timeout)
            if outcome == RECONCILED_MINTED:
                attempt.digest = ctx.cert.cert_hash
                attempt.advance(MintState.RECORDED)
                return ctx
            if outcome == RECONCILED_PENDING:
                raise MintInProgress()
            if ctx.cert.cert_hash:
                raise AlreadyMinted()

        attempt.advance(MintState.RESOLVED)
        return ctx

    def _platform_keypair(self) -> Ed25519Keypair:
        if not (self.settings.sui_secret_key and self.settings.sui_package_id and self.settings.sui_factory_id):
            raise MintFailed("ledger integration is not configured")
        return Ed25519Keypair.from_secret(self.settings.sui_secret_key)

    async def _acquire_gas_coin(self, owner: str) -> str:
        attempts = max(1, self.settings.funding_poll_attempts)
        for i in range(attempts):
            for coin in await self.ledger.get_coins(owner):
                if int(coin.get("balance") or 0) >= self.settings.sui_gas_budget:
                    return coin["coinObjectId"]
            logger.info("no gas coin for %s yet (attempt %d/%d)", owner, i + 1, attempts)
            if i + 1 < attempts:
                await self._sleep(self.settings.funding_poll_interval)
        raise NoFundingAvailable(f"no funded coin for {owner} after {attempts} attempts")

    def _image_url(self, filename: str) -> str:
        base = self.settings.public_base_url.rstrip("/")
        if base and filename:
            return f"{base}/uploads/{filename}"
        return filename or ""

    def _call_arguments(self, ctx: CertContext, student_address: str) -> list:
        issued = ctx.course.created_at
        return [
            self.settings.sui_factory_id,
            ctx.student.email,
            student_address,
            ctx.student.full_name or "",
            ctx.issuer_name,
            self.settings.cert_title,
            self._image_url(ctx.course.image_filename),
            issued.date().isoformat(),
            str(to_millis(add_one_year(issued))),
        ]
