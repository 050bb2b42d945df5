"""
byteasm 256-byte Memory

The machine has a single flat address space of 256 unsigned byte cells,
zero-initialised. It is the only mutable state: every instruction reads and
writes through it, and the AST never changes during evaluation.

    $00–$FF  General purpose cells (no regions, no I/O, no protection)

Addresses are single bytes, so every reference the parser can produce is
in range. Direct indexing with anything outside $00–$FF raises IndexError
instead of wrapping like a plain bytearray would for negative indices.
"""

from __future__ import annotations
from typing import Dict, Iterator

MEMORY_SIZE = 0x100


class Memory:
    """Fixed 256-byte memory backing one evaluation session.

    Behaves like a small bytearray: ``mem[addr]`` reads a cell,
    ``mem[addr] = value`` writes one. Callers may reuse an instance across
    runs and call reset() in between.
    """

    def __init__(self, data: bytes = b""):
        self._mem = bytearray(MEMORY_SIZE)
        if data:
            self.load(data)

    # --- Core read/write ---

    def __getitem__(self, addr: int) -> int:
        return self._mem[self._check_addr(addr)]

    def __setitem__(self, addr: int, value: int):
        if not 0 <= value <= 0xFF:
            raise ValueError(f"Value {value} does not fit in a byte")
        self._mem[self._check_addr(addr)] = value

    @staticmethod
    def _check_addr(addr: int) -> int:
        if not 0 <= addr < MEMORY_SIZE:
            raise IndexError(f"Address {addr} outside $00-$FF")
        return addr

    def __len__(self) -> int:
        return MEMORY_SIZE

    def __iter__(self) -> Iterator[int]:
        return iter(self._mem)

    def __bytes__(self) -> bytes:
        return bytes(self._mem)

    def __eq__(self, other) -> bool:
        if isinstance(other, Memory):
            return self._mem == other._mem
        if isinstance(other, (bytes, bytearray)):
            return self._mem == other
        return NotImplemented

    def __repr__(self) -> str:
        cells = ", ".join(f"${a:02X}=${v:02X}" for a, v in self.nonzero().items())
        return f"Memory({cells})"

    # --- Bulk load / reset ---

    def reset(self):
        """Zero every cell."""
        self._mem[:] = bytes(MEMORY_SIZE)

    def load(self, data: bytes, offset: int = 0):
        """Copy an image into memory starting at offset.

        The image must fit inside the address space; nothing wraps around.
        """
        self._check_addr(offset)
        if offset + len(data) > MEMORY_SIZE:
            raise ValueError(
                f"Image of {len(data)} bytes at ${offset:02X} overflows memory")
        self._mem[offset:offset + len(data)] = data

    # --- Inspection ---

    def snapshot(self) -> bytes:
        """Immutable copy of the current contents, for before/after diffs."""
        return bytes(self._mem)

    def nonzero(self) -> Dict[int, int]:
        """Map of address -> value for every non-zero cell."""
        return {addr: val for addr, val in enumerate(self._mem) if val}

    def hexdump(self) -> str:
        """Hex dump, 16 cells per row, with printable-ASCII gutter."""
        lines = []
        for addr in range(0, MEMORY_SIZE, 16):
            row = self._mem[addr:addr + 16]
            hex_bytes = ' '.join(f'{b:02X}' for b in row)
            ascii_bytes = ''.join(chr(b) if 0x20 <= b < 0x7F else '.' for b in row)
            lines.append(f'${addr:02X}:  {hex_bytes}  {ascii_bytes}')
        return '\n'.join(lines)
