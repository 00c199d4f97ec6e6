import pytest
import ujson as json
from solders.keypair import Keypair

from ntt_authority.errors import InvalidInputError
from ntt_authority.keys import load_keypair, load_keypairs


def write_keypair(path, keypair: Keypair):
    path.write_text(json.dumps(list(bytes(keypair))), encoding="utf8")

    return path


def test_load_keypair(tmp_path):
    keypair = Keypair()
    path = write_keypair(tmp_path / "payer.json", keypair)

    assert load_keypair(path).pubkey() == keypair.pubkey()
    assert load_keypair(str(path)).pubkey() == keypair.pubkey()


def test_load_keypair_missing(tmp_path):
    with pytest.raises(InvalidInputError):
        load_keypair(tmp_path / "missing.json")


def test_load_keypair_invalid(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("[1, 2, 3]", encoding="utf8")

    with pytest.raises(InvalidInputError):
        load_keypair(path)


def test_load_keypairs_keeps_order(tmp_path):
    keypairs = [Keypair() for _ in range(3)]
    paths = [
        write_keypair(tmp_path / f"signer_{index}.json", keypair)
        for index, keypair in enumerate(keypairs)
    ]

    loaded = load_keypairs([str(paths[0]), "", str(paths[1]), str(paths[2])])

    assert [keypair.pubkey() for keypair in loaded] == [
        keypair.pubkey() for keypair in keypairs
    ]
