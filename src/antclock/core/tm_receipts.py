# tm_receipts.py
# =============================================================================
# Hash-Chained Step Receipts
# =============================================================================
#
# One receipt per adaptive step. Each receipt carries the SHA-256 of its
# predecessor in prev_receipt_hash, and its own receipt_hash covers the whole
# body including that link. Any edit or removal breaks verification. The
# first receipt links to GENESIS_HASH.
#
# Receipts are kept in memory and, when a path is given, appended as JSONL.

import hashlib
import json
import logging
import struct
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .tm_core_fields import BULK_FIELD_NAMES

logger = logging.getLogger('antclock.receipts')

GENESIS_HASH = "0" * 64


def state_fingerprint(state) -> str:
    """SHA-256 over the raw bytes of every bulk array and the interface scalars."""
    h = hashlib.sha256()
    for name in BULK_FIELD_NAMES:
        h.update(np.ascontiguousarray(getattr(state.bulk, name), dtype=np.float64).tobytes())
    h.update(struct.pack("<dqdd", state.interface.s, state.interface.x_b_index,
                         state.interface.tau, state.t))
    return h.hexdigest()


def _receipt_hash(body: Dict[str, Any]) -> str:
    receipt_str = json.dumps(body, sort_keys=True, default=str)
    return hashlib.sha256(receipt_str.encode()).hexdigest()


class ReceiptEmitter:
    """Hash-chained receipt per adaptive step.

    Each receipt commits to the previous one through prev_receipt_hash, which
    is part of the hashed body. Receipts are kept in memory and, when a file
    is given, appended to it as JSON lines.
    """

    def __init__(self, receipts_file: Optional[str] = None, run_id: str = "antclock_run"):
        self.receipts_file = receipts_file
        self.run_id = run_id
        self.prev_receipt_hash = GENESIS_HASH
        self.receipts: List[Dict[str, Any]] = []

    def _emit_receipt(self, body: Dict[str, Any]) -> Dict[str, Any]:
        body['prev_receipt_hash'] = self.prev_receipt_hash
        receipt_hash = _receipt_hash(body)
        receipt = dict(body)
        receipt['receipt_hash'] = receipt_hash
        self.prev_receipt_hash = receipt_hash
        self.receipts.append(receipt)

        if self.receipts_file:
            with open(self.receipts_file, 'a') as f:
                f.write(json.dumps(receipt, default=str) + '\n')
        return receipt

    def emit_step_receipt(self, step: int, state, dt: float, should_tick: bool,
                          label: Optional[str], event_magnitude: float) -> Dict[str, Any]:
        body = {
            'run_id': self.run_id,
            'step': int(step),
            'event': 'ANTCLOCK_TICK' if should_tick else 'ANTCLOCK_STEP',
            't': float(state.t),
            'tau': float(state.interface.tau),
            'dt': float(dt),
            'tick': bool(should_tick),
            'label': label,
            'event_magnitude': float(event_magnitude),
            'grid': {
                'nx': state.nx,
                'L': state.L,
                'dx': state.dx,
                'periodic': True,
            },
            'hash': {
                'state_after': state_fingerprint(state),
            },
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }
        receipt = self._emit_receipt(body)
        logger.debug("Step receipt emitted", extra={
            "extra_data": {"step": step, "receipt_hash": receipt['receipt_hash']}
        })
        return receipt


def verify_receipt_chain(receipts: Sequence[Dict[str, Any]]) -> Tuple[bool, List[str]]:
    """Recompute every hash and link in order.

    Returns:
        (is_valid, errors) where errors names each broken receipt by position.
    """
    errors = []
    prev = GENESIS_HASH
    for i, receipt in enumerate(receipts):
        body = {k: v for k, v in receipt.items() if k != 'receipt_hash'}
        if body.get('prev_receipt_hash') != prev:
            errors.append(f"receipt {i}: prev_receipt_hash does not match receipt {i - 1}")
        expected = _receipt_hash(body)
        if receipt.get('receipt_hash') != expected:
            errors.append(f"receipt {i}: receipt_hash mismatch")
        prev = receipt.get('receipt_hash')
    return len(errors) == 0, errors
