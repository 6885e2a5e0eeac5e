from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class LedgerAccount:
    """A signing account supplied by the bootstrap layer.

    name:    configuration handle ("issuer", "verity", ...)
    address: classic address
    seed:    secret used to sign; kept out of repr so it never reaches logs
    """

    name: str
    address: str
    seed: str = field(repr=False)
