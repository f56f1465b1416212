"""Shared fixtures for the VFS0097 tests."""

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from factories import SEED, make_profile
from vfs0097.core.models import DeviceSession
from vfs0097.core.profile import DeviceProfile


@pytest.fixture
def manufacturer_key() -> ec.EllipticCurvePrivateKey:
    """Stands in for the key the vendor signs ECDH blocks with."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def device_key() -> ec.EllipticCurvePrivateKey:
    """The pairing key stored encrypted in flash."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def ecdh_key() -> ec.EllipticCurvePrivateKey:
    """The device's ECDH key carried by the signed block."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def profile(manufacturer_key: ec.EllipticCurvePrivateKey) -> DeviceProfile:
    return make_profile(manufacturer_key)


@pytest.fixture
def session() -> DeviceSession:
    session = DeviceSession(seed=SEED)
    session.allocate_buffer(0x10000)
    return session
