from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal

Kind = Literal["raw", "dgt"]


@dataclass(slots=True)
class GBank:
    """
    Schema descriptor for one output bank (a detector, the header, or the generated block).

    The output layer never interprets the variables; it only uses them to order
    and label columns.
    """
    name: str
    idtag: int = 0
    raw_vars: List[str] = field(default_factory=list)
    dgt_vars: List[str] = field(default_factory=list)

    def columns(self, kind: Kind, observed: Iterable[Iterable[str]] = ()) -> List[str]:
        """Declared variables first, then any observed keys not declared, in first-seen order."""
        declared = self.raw_vars if kind == "raw" else self.dgt_vars
        cols = list(declared)
        seen = set(cols)
        for keys in observed:
            for k in keys:
                if k not in seen:
                    seen.add(k)
                    cols.append(k)
        return cols


BankMap = Dict[str, GBank]


def bank_for(banks: BankMap | None, name: str) -> GBank:
    """Look up a bank by detector name; unknown detectors get an empty descriptor."""
    if banks and name in banks:
        return banks[name]
    return GBank(name=name)
