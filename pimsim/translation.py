"""Virtual-to-physical address translations."""

from __future__ import annotations

import logging

from .interfaces import ConfigurationError, Request, Translation

_log = logging.getLogger(__name__)

_MASK64 = (1 << 64) - 1


class Mt19937_64:
    """The 64-bit Mersenne Twister generator with the standard parameters."""

    _N = 312
    _M = 156
    _MATRIX_A = 0xB5026F5AA96619E9
    _UPPER = 0xFFFFFFFF80000000
    _LOWER = 0x7FFFFFFF
    DEFAULT_SEED = 5489

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        self._mt: list[int] = []
        self._index = self._N
        self.seed(seed)

    def seed(self, seed: int) -> None:
        state = [seed & _MASK64]
        for i in range(1, self._N):
            prev = state[-1]
            state.append((6364136223846793005 * (prev ^ (prev >> 62)) + i) & _MASK64)
        self._mt = state
        self._index = self._N

    def _twist(self) -> None:
        mt = self._mt
        n = self._N
        for i in range(n):
            x = (mt[i] & self._UPPER) | (mt[(i + 1) % n] & self._LOWER)
            x_a = x >> 1
            if x & 1:
                x_a ^= self._MATRIX_A
            mt[i] = mt[(i + self._M) % n] ^ x_a
        self._index = 0

    def __call__(self) -> int:
        if self._index >= self._N:
            self._twist()
        y = self._mt[self._index]
        self._index += 1
        y ^= (y >> 29) & 0x5555555555555555
        y ^= (y << 17) & 0x71D67FFFEDA60000
        y ^= (y << 37) & 0xFFF7EEE000000000
        y ^= y >> 43
        return y & _MASK64


class NoTranslation(Translation):
    """Uses the virtual address as the physical address."""

    def __init__(self, max_addr: int) -> None:
        self.max_addr = max_addr

    def translate(self, req: Request) -> bool:
        return True


class RandomTranslation(Translation):
    """Randomly allocates physical pages to virtual pages, per core."""

    def __init__(
        self, max_addr: int, num_cores: int = 1, pagesize_kb: int = 4, seed: int = 123
    ) -> None:
        self._rng = Mt19937_64(seed)
        self.max_addr = max_addr
        self.pagesize = pagesize_kb << 10
        self.offset_bits = self.pagesize.bit_length() - 1
        self.num_pages = max_addr // self.pagesize
        self._free_pages = [True] * self.num_pages
        self.num_free_pages = self.num_pages
        self._translation: list[dict[int, int]] = [{} for _ in range(num_cores)]
        self.reserved_pages: set[int] = set()

    def _random_page(self) -> int:
        return self._rng() % self.num_pages

    def translate(self, req: Request) -> bool:
        vpn = req.addr >> self.offset_bits
        core_translation = self._translation[req.source_id]
        if vpn not in core_translation:
            if self.num_free_pages == 0:
                # Out of physical pages: replace a random one (swap latency not modeled).
                ppn = self._random_page()
                while ppn in self.reserved_pages:
                    ppn = self._random_page()
                core_translation[vpn] = ppn
                _log.warning("Swapping out PPN %d for Addr %d, VPN %d.", ppn, req.addr, vpn)
            else:
                ppn = self._random_page()
                while ppn in self.reserved_pages or not self._free_pages[ppn]:
                    ppn = self._random_page()
                core_translation[vpn] = ppn
                self.num_free_pages -= 1

        offset_mask = (1 << self.offset_bits) - 1
        p_addr = (core_translation[vpn] << self.offset_bits) | (req.addr & offset_mask)
        _log.debug(
            "Translated Addr %d, VPN %d to Addr %d, PPN %d.",
            req.addr, vpn, p_addr, core_translation[vpn],
        )
        req.addr = p_addr
        return True

    def reserve(self, kind: str, addr: int) -> bool:
        if kind != "Hydra":
            raise ConfigurationError(
                "Hydra translation only accepts address reservation for Hydra."
            )
        self.reserved_pages.add(addr >> self.offset_bits)
        return True

    def get_max_addr(self) -> int:
        return self.max_addr