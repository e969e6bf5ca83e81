"""Issuer key id extraction from detached OpenPGP signatures.

Only the issuer is read -- the signature is never verified. The chain is:

  dearmor(blob)              -> raw packet bytes   (ArmorError)
  parse_signature_packet(..) -> SignaturePacket    (SignatureParseError)
  SignaturePacket.issuer()   -> 8-byte key id      (MissingIssuerError)

issuer_key_id() collapses every failure to None: a commit whose signature
cannot be read simply has no key id. Packet layout follows RFC 4880 (v3/v4)
and RFC 9580 (v6).
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

ARMOR_BEGIN = "-----BEGIN PGP SIGNATURE-----"
ARMOR_END = "-----END PGP SIGNATURE-----"

KEY_ID_LENGTH = 8

_TAG_SIGNATURE = 2
_SUBPACKET_ISSUER = 16
_SUBPACKET_ISSUER_FINGERPRINT = 33

_CRC24_INIT = 0xB704CE
_CRC24_POLY = 0x1864CFB


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class SignatureError(ValueError):
    """Base for every soft failure while reading a signature."""


class ArmorError(SignatureError):
    """ASCII armor envelope missing, malformed, or failing its checksum."""


class SignatureParseError(SignatureError):
    """Bytes do not form a valid signature packet."""


class MissingIssuerError(SignatureError):
    """No usable 8-byte issuer key id in the signature."""


# ---------------------------------------------------------------------------
# ASCII armor
# ---------------------------------------------------------------------------


def crc24(data: bytes) -> int:
    """OpenPGP CRC-24 over data."""
    crc = _CRC24_INIT
    for byte in data:
        crc ^= byte << 16
        for _ in range(8):
            crc <<= 1
            if crc & 0x1000000:
                crc ^= _CRC24_POLY
    return crc & 0xFFFFFF


def dearmor(blob: str | bytes) -> bytes:
    """Strip the armor envelope and return the decoded packet bytes."""
    if isinstance(blob, bytes):
        try:
            text = blob.decode("ascii")
        except UnicodeDecodeError as exc:
            raise ArmorError("armored signature is not ASCII") from exc
    else:
        text = blob

    lines = [line.strip() for line in text.splitlines()]
    try:
        start = lines.index(ARMOR_BEGIN)
    except ValueError:
        raise ArmorError("no PGP SIGNATURE armor header") from None
    try:
        end = lines.index(ARMOR_END, start + 1)
    except ValueError:
        raise ArmorError("armor is not terminated") from None

    inner = lines[start + 1:end]
    # Armor headers ("Key: Value") run up to the first blank line
    if "" in inner:
        sep = inner.index("")
        if all(": " in line for line in inner[:sep]):
            inner = inner[sep + 1:]

    checksum: str | None = None
    if inner and inner[-1].startswith("="):
        checksum = inner.pop()[1:]
    payload = "".join(line for line in inner if line)
    if not payload:
        raise ArmorError("armor has an empty body")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ArmorError(f"invalid base64 in armor body: {exc}") from exc

    if checksum is not None:
        try:
            expected = base64.b64decode(checksum, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ArmorError(f"invalid armor checksum: {exc}") from exc
        if len(expected) != 3 or int.from_bytes(expected, "big") != crc24(data):
            raise ArmorError("armor checksum mismatch")
    return data


# ---------------------------------------------------------------------------
# Packet parsing
# ---------------------------------------------------------------------------


@dataclass
class SignaturePacket:
    """The parts of a signature packet needed to name its issuer."""

    version: int
    sig_type: int
    pubkey_algo: int
    hash_algo: int
    issuer_field: bytes | None = None       # v3 only: fixed key id field
    hashed: list[tuple[int, bytes]] = field(default_factory=list)
    unhashed: list[tuple[int, bytes]] = field(default_factory=list)

    def _subpackets(self, kind: int) -> list[bytes]:
        return [body for t, body in self.hashed + self.unhashed if t == kind]

    def issuer(self) -> bytes:
        """Issuer key id: v3 field, Issuer subpacket, or fingerprint tail."""
        if self.issuer_field is not None:
            return _require_key_id(self.issuer_field)

        issuers = self._subpackets(_SUBPACKET_ISSUER)
        if issuers:
            return _require_key_id(issuers[0])

        fingerprints = self._subpackets(_SUBPACKET_ISSUER_FINGERPRINT)
        if fingerprints:
            return _require_key_id(_fingerprint_key_id(fingerprints[0]))

        raise MissingIssuerError("signature has no issuer subpacket")


def _require_key_id(value: bytes) -> bytes:
    if len(value) != KEY_ID_LENGTH:
        raise MissingIssuerError(f"issuer key id has {len(value)} bytes, expected 8")
    return bytes(value)


def _fingerprint_key_id(body: bytes) -> bytes:
    """Key id from an Issuer Fingerprint subpacket body.

    v4 keys use the low-order 8 bytes of the 20-byte fingerprint; v5/v6
    keys use the leading 8 bytes of the 32-byte fingerprint.
    """
    if not body:
        raise MissingIssuerError("empty issuer fingerprint")
    key_version, fingerprint = body[0], body[1:]
    if key_version == 4 and len(fingerprint) == 20:
        return fingerprint[-KEY_ID_LENGTH:]
    if key_version in (5, 6) and len(fingerprint) == 32:
        return fingerprint[:KEY_ID_LENGTH]
    raise MissingIssuerError(
        f"unsupported issuer fingerprint (key v{key_version}, {len(fingerprint)} bytes)"
    )


class _Reader:
    """Bounds-checked cursor over packet bytes."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    @property
    def remaining(self) -> int:
        return len(self.data) - self.pos

    def take(self, n: int) -> bytes:
        if n < 0 or n > self.remaining:
            raise SignatureParseError(
                f"truncated packet: need {n} bytes at offset {self.pos}, "
                f"have {self.remaining}"
            )
        chunk = self.data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]

    def uint(self, width: int) -> int:
        return int.from_bytes(self.take(width), "big")


def _read_packet(data: bytes) -> tuple[int, bytes]:
    """Read one packet header, return (tag, body)."""
    reader = _Reader(data)
    header = reader.byte()
    if not header & 0x80:
        raise SignatureParseError("not an OpenPGP packet (bit 7 clear)")

    if header & 0x40:
        # New format
        tag = header & 0x3F
        first = reader.byte()
        if first < 192:
            length = first
        elif first < 224:
            length = ((first - 192) << 8) + reader.byte() + 192
        elif first == 255:
            length = reader.uint(4)
        else:
            raise SignatureParseError("partial body lengths are not valid for signatures")
    else:
        # Old format
        tag = (header >> 2) & 0x0F
        length_type = header & 0x03
        if length_type == 3:
            length = reader.remaining
        else:
            length = reader.uint((1, 2, 4)[length_type])

    return tag, reader.take(length)


def _read_subpackets(area: bytes) -> list[tuple[int, bytes]]:
    reader = _Reader(area)
    out: list[tuple[int, bytes]] = []
    while reader.remaining:
        first = reader.byte()
        if first < 192:
            length = first
        elif first < 255:
            length = ((first - 192) << 8) + reader.byte() + 192
        else:
            length = reader.uint(4)
        if length == 0:
            raise SignatureParseError("zero-length signature subpacket")
        body = reader.take(length)
        out.append((body[0] & 0x7F, body[1:]))   # drop the critical bit
    return out


def parse_signature_packet(data: bytes) -> SignaturePacket:
    """Parse a standalone signature packet (v3, v4, v5 or v6)."""
    tag, body = _read_packet(data)
    if tag != _TAG_SIGNATURE:
        raise SignatureParseError(f"expected a signature packet (tag 2), got tag {tag}")

    reader = _Reader(body)
    version = reader.byte()

    if version in (2, 3):
        if reader.byte() != 5:
            raise SignatureParseError("v3 signature hashed material must be 5 bytes")
        sig_type = reader.byte()
        reader.take(4)                       # creation time
        issuer_field = reader.take(KEY_ID_LENGTH)
        pubkey_algo = reader.byte()
        hash_algo = reader.byte()
        reader.take(2)                       # left 16 bits of hash
        return SignaturePacket(
            version=version,
            sig_type=sig_type,
            pubkey_algo=pubkey_algo,
            hash_algo=hash_algo,
            issuer_field=issuer_field,
        )

    if version in (4, 5, 6):
        sig_type = reader.byte()
        pubkey_algo = reader.byte()
        hash_algo = reader.byte()
        width = 4 if version == 6 else 2
        hashed = _read_subpackets(reader.take(reader.uint(width)))
        unhashed = _read_subpackets(reader.take(reader.uint(width)))
        reader.take(2)                       # left 16 bits of hash
        return SignaturePacket(
            version=version,
            sig_type=sig_type,
            pubkey_algo=pubkey_algo,
            hash_algo=hash_algo,
            hashed=hashed,
            unhashed=unhashed,
        )

    raise SignatureParseError(f"unsupported signature version {version}")


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def extract_issuer(blob: str | bytes) -> bytes:
    """Run the full chain, raising a SignatureError subclass on failure."""
    return parse_signature_packet(dearmor(blob)).issuer()


def issuer_key_id(blob: str | bytes | None) -> bytes | None:
    """8-byte issuer key id of an armored signature, or None."""
    if not blob:
        return None
    try:
        return extract_issuer(blob)
    except SignatureError as exc:
        log.debug("No issuer key id (%s): %s", type(exc).__name__, exc)
        return None
