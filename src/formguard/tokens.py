import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Union


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    time: int


class TokenCodec:
    """HMAC-SHA-256 over ``identity + str(time)``, hex encoded.

    No nonce and no stored state: the same identity and time always give the
    same token, which is what lets the server recompute it on submission.
    """

    def __init__(self, key: bytes):
        self._key = key

    def issue(self, identity: str, time: Union[int, str]) -> str:
        message = (identity + str(time)).encode("utf-8")
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    def issue_now(self, identity: str, clock=now_ms) -> IssuedToken:
        issued_at = clock()
        return IssuedToken(token=self.issue(identity, issued_at), time=issued_at)

    def __repr__(self):
        return "TokenCodec(key=**********)"
