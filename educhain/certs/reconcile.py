"""Resolves certs left `pending` by a mint whose outcome was never recorded.

Run as a script to sweep every pending cert:

    python -m educhain.certs.reconcile
"""
import asyncio
import logging
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from educhain.certs.service import clear_pending, list_pending_certs, mark_minted
from educhain.ledger.client import SuiClient, execution_succeeded
from educhain.models.cert import Cert

logger = logging.getLogger(__name__)

RECONCILED_MINTED = "minted"
RECONCILED_RESET = "reset"
RECONCILED_PENDING = "pending"


def _expired(cert: Cert, pending_timeout: int) -> bool:
    since = cert.pending_since or datetime.utcnow()
    return datetime.utcnow() - since > timedelta(seconds=pending_timeout)


async def reconcile_cert(db: Session, ledger: SuiClient, cert: Cert, pending_timeout: int) -> str:
    digest = cert.pending_digest
    if not digest:
        # claimed, transaction not built yet
        if _expired(cert, pending_timeout):
            logger.warning("cert %s: claim without a transaction expired, releasing", cert.id)
            clear_pending(db, cert)
            return RECONCILED_RESET
        return RECONCILED_PENDING

    tx = await ledger.get_transaction(digest)
    if tx is None:
        if _expired(cert, pending_timeout):
            logger.warning("cert %s: transaction %s never landed, releasing", cert.id, digest)
            clear_pending(db, cert)
            return RECONCILED_RESET
        return RECONCILED_PENDING

    if execution_succeeded(tx):
        if not mark_minted(db, cert, digest):
            logger.warning("cert %s: already settled by another mint", cert.id)
            return RECONCILED_RESET
        logger.info("cert %s: recorded %s after reconciliation", cert.id, digest)
        return RECONCILED_MINTED

    logger.warning("cert %s: transaction %s failed on chain, releasing", cert.id, digest)
    clear_pending(db, cert)
    return RECONCILED_RESET


async def reconcile_pending(db: Session, ledger: SuiClient, pending_timeout: int) -> dict[str, int]:
    counts = {RECONCILED_MINTED: 0, RECONCILED_RESET: 0, RECONCILED_PENDING: 0}
    for cert in list_pending_certs(db):
        outcome = await reconcile_cert(db, ledger, cert, pending_timeout)
        counts[outcome] += 1
    return counts


def main():
    from educhain.config import settings
    from educhain.db.session import make_engine, make_session_factory, init_db

    logging.basicConfig(level=settings.log_level.upper())
    engine = make_engine()
    init_db(engine)
    db = make_session_factory(engine)()
    try:
        counts = asyncio.run(reconcile_pending(db, SuiClient(settings.sui_rpc_url), settings.pending_timeout))
    finally:
        db.close()
    logger.info("reconciliation done: %s", counts)


if __name__ == "__main__":
    main()
