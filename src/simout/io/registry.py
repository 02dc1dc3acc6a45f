"""Format name -> writer factory registry."""
from __future__ import annotations
from typing import Callable, Dict, Iterator, List

from simout.io.errors import OutputConfigError
from simout.io.h5_writer import H5StreamWriter
from simout.io.txt_writer import TextWriter
from simout.io.writer_base import OutputWriter

WriterFactory = Callable[[], OutputWriter]


class WriterRegistry:
    """
    Maps an output format name to a zero-argument writer factory.

    The driver owns its registry and passes it to whatever resolves formats;
    there is no process-wide instance.
    """

    def __init__(self) -> None:
        self._factories: Dict[str, WriterFactory] = {}

    def register(self, name: str, factory: WriterFactory) -> None:
        if name in self._factories:
            raise ValueError(f"Output format already registered: {name}")
        self._factories[name] = factory

    def resolve(self, name: str) -> OutputWriter:
        """Return a new writer for `name`; unknown names are a fatal configuration error."""
        try:
            factory = self._factories[name]
        except KeyError:
            known = ", ".join(sorted(self._factories)) or "<none>"
            raise OutputConfigError(f"Unknown output format '{name}' (known formats: {known})") from None
        return factory()

    def names(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._factories)


def default_registry() -> WriterRegistry:
    """A fresh registry holding the built-in writers."""
    reg = WriterRegistry()
    reg.register("hdf5", H5StreamWriter)
    reg.register("h5", H5StreamWriter)
    reg.register("txt", TextWriter)
    return reg
