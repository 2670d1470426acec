"""External collaborators of the escrow ledger.

The ledger itself only does weight accounting. Ownership of lock records,
custody of the locked token, caller authorization and signature recovery
live behind these small in-memory implementations so they can be swapped
for real backends.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Set

from .errors import InsufficientBalance, LockNotFound, NotAuthorized, ZeroAmount


class LockRegistry:
    """Lock id allocation and ownership lookup."""

    def __init__(self):
        self._next_id = 1
        self._owners: Dict[int, str] = {}
        self._tokens: Dict[str, Set[int]] = {}

    def mint(self, owner: str) -> int:
        """Allocate the next lock id and assign it to ``owner``."""
        lock_id = self._next_id
        self._next_id += 1
        self._owners[lock_id] = owner
        self._tokens.setdefault(owner, set()).add(lock_id)
        return lock_id

    def burn(self, lock_id: int) -> None:
        owner = self.owner_of(lock_id)
        del self._owners[lock_id]
        self._tokens[owner].discard(lock_id)

    def exists(self, lock_id: int) -> bool:
        return lock_id in self._owners

    def owner_of(self, lock_id: int) -> str:
        try:
            return self._owners[lock_id]
        except KeyError:
            raise LockNotFound(f"lock {lock_id} does not exist") from None

    def tokens_of(self, owner: str) -> List[int]:
        return sorted(self._tokens.get(owner, ()))

    @property
    def minted(self) -> int:
        """Number of ids handed out so far, burned ones included."""
        return self._next_id - 1


class TokenCustody:
    """Fungible balances of the locked token, with the escrow's own holding."""

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self._balances: Dict[str, int] = dict(balances or {})
        self.escrowed = 0

    def deposit(self, account: str, amount: int) -> None:
        """Credit ``account`` from outside the system (faucet/mint)."""
        if amount <= 0:
            raise ZeroAmount("deposit amount must be positive")
        self._balances[account] = self._balances.get(account, 0) + amount

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def check_transfer_in(self, account: str, amount: int) -> None:
        if self.balance_of(account) < amount:
            raise InsufficientBalance(
                f"{account} holds {self.balance_of(account)}, needs {amount}"
            )

    def transfer_in(self, account: str, amount: int) -> None:
        """Move ``amount`` from ``account`` into escrow."""
        self.check_transfer_in(account, amount)
        self._balances[account] -= amount
        self.escrowed += amount

    def transfer_out(self, account: str, amount: int) -> None:
        """Release ``amount`` from escrow to ``account``."""
        if self.escrowed < amount:
            raise InsufficientBalance(f"escrow holds {self.escrowed}, needs {amount}")
        self.escrowed -= amount
        self._balances[account] = self._balances.get(account, 0) + amount


class Authorizer(Protocol):
    def check(self, caller: str, lock_id: int) -> None:
        ...


class OwnerAuthorizer:
    """Only the owner of a lock may mutate it."""

    def __init__(self, registry: LockRegistry):
        self.registry = registry

    def check(self, caller: str, lock_id: int) -> None:
        owner = self.registry.owner_of(lock_id)
        if caller != owner:
            raise NotAuthorized(f"{caller} is not the owner of lock {lock_id}")


class SignatureVerifier(Protocol):
    def recover(
        self, lock_id: int, delegatee: str, nonce: int, expiry: int, signature: bytes
    ) -> Optional[str]:
        """Return the signer of a delegation message, or None if it is malformed."""
        ...


@dataclass
class ManualClock:
    """Integer clock that only moves when told to."""
    current: int = 0
    history: List[int] = field(default_factory=list)

    def now(self) -> int:
        return self.current

    def __call__(self) -> int:
        return self.current

    def set(self, ts: int) -> int:
        if ts < self.current:
            raise ValueError(f"clock cannot move backwards from {self.current} to {ts}")
        self.history.append(self.current)
        self.current = ts
        return self.current

    def advance(self, seconds: int) -> int:
        return self.set(self.current + seconds)
