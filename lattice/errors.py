from __future__ import annotations


class LatticeError(Exception):
    """Base class for every trust-anchor error kind.

    ``code`` is the stable kind name callers branch on and ``number`` keeps
    the numbering used by the on-chain program (custom errors start at 6000).
    """

    code = "LatticeError"
    number = 6999
    message = "Trust anchor error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or type(self).message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "number": self.number, "message": self.message}


class InvalidMerkleProof(LatticeError):
    code = "InvalidMerkleProof"
    number = 6000
    message = "Invalid merkle proof"


class InvalidTrustWeight(LatticeError):
    code = "InvalidTrustWeight"
    number = 6001
    message = "Trust weight must be between 0 and 10000"


class EdgeCountOverflow(LatticeError):
    # Also covers a zero edge count published with a non-zero root.
    code = "EdgeCountOverflow"
    number = 6002
    message = "Edge count overflow"


class AlreadyExists(LatticeError):
    code = "AlreadyExists"
    number = 6003
    message = "Trust anchor already exists"


class AuthorizationError(LatticeError):
    code = "AuthorizationError"
    number = 6004
    message = "Caller is not the trust anchor owner"


class AnchorNotFound(LatticeError):
    code = "AnchorNotFound"
    number = 6005
    message = "Trust anchor not found"
