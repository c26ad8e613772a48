# ClaimProof - test_attestation.py

import json
from pathlib import Path

import pytest

from claimproof_server.artifacts import AssetStats
from claimproof_server.attestation import StatAttestationTree, load_dataset
from claimproof_server.encoding import PACKED_ENCODING_V1, from_hex, keccak256
from claimproof_server.errors import ConfigurationFault, DatasetAssetNotFound
from claimproof_server.merkle import MerkleTree


def test_two_asset_scenario(two_asset_records: list[AssetStats]) -> None:
    """Dataset of two assets: the proof of asset 1 is asset 2's leaf."""
    attestation = StatAttestationTree(two_asset_records)
    leaf_1 = PACKED_ENCODING_V1.stat_leaf(1, 100, 20)
    leaf_2 = PACKED_ENCODING_V1.stat_leaf(2, 80, 30)

    artifact = attestation.proof_for(1)

    assert artifact.leaf == "0x" + leaf_1.hex()
    assert artifact.proof == ["0x" + leaf_2.hex()]
    recombined = keccak256(min(leaf_1, leaf_2) + max(leaf_1, leaf_2))
    assert recombined == attestation.root()
    assert artifact.root == attestation.root_hex()
    assert artifact.stats == AssetStats(asset_id=1, hit_points=100, attack=20)


def test_root_is_deterministic(dataset_file: Path) -> None:
    first = StatAttestationTree.from_file(dataset_file).root_hex()
    second = StatAttestationTree.from_file(dataset_file).root_hex()
    assert first == second


def test_every_asset_proof_recombines(dataset_file: Path) -> None:
    attestation = StatAttestationTree.from_file(dataset_file)
    for asset_id in attestation.asset_ids():
        artifact = attestation.proof_for(asset_id)
        assert MerkleTree.verify_proof(
            [from_hex(node) for node in artifact.proof],
            from_hex(artifact.leaf),
            attestation.root(),
        )
        stats = attestation.stats_for(asset_id)
        assert attestation.verify(
            asset_id,
            stats.hit_points,
            stats.attack,
            artifact.proof,
        )


def test_verify_rejects_altered_stats(dataset_file: Path) -> None:
    attestation = StatAttestationTree.from_file(dataset_file)
    proof = attestation.proof_for(2).proof
    assert not attestation.verify(2, 80, 31, proof)
    assert not attestation.verify(2, 80, 30, ["0xnothex"])
    assert not attestation.verify(2, -80, 30, proof)


def test_unknown_asset(two_asset_records: list[AssetStats]) -> None:
    attestation = StatAttestationTree(two_asset_records)
    assert not attestation.has_asset(3)
    with pytest.raises(DatasetAssetNotFound):
        attestation.proof_for(3)
    with pytest.raises(DatasetAssetNotFound):
        attestation.stats_for(0)


def test_dataset_accepts_published_field_names(dataset_file: Path) -> None:
    records = load_dataset(dataset_file)
    assert records[2] == AssetStats(asset_id=3, hit_points=120, attack=15)


def test_changing_a_record_changes_the_root(
    two_asset_records: list[AssetStats],
) -> None:
    altered = [
        two_asset_records[0],
        AssetStats(asset_id=2, hit_points=80, attack=31),
    ]
    assert (
        StatAttestationTree(two_asset_records).root()
        != StatAttestationTree(altered).root()
    )


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps({"tokenId": 1}),
        json.dumps([{"tokenId": 0, "hp": 1, "attack": 1}]),
        json.dumps([{"tokenId": 1, "hp": -1, "attack": 1}]),
        json.dumps([{"tokenId": "1", "hp": 1, "attack": 1}]),
    ],
)
def test_malformed_dataset_is_a_configuration_fault(
    tmp_path: Path,
    content: str,
) -> None:
    path = tmp_path / "stats.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationFault):
        load_dataset(path)


def test_missing_dataset_is_a_configuration_fault(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationFault):
        StatAttestationTree.from_file(tmp_path / "absent.json")


def test_empty_or_duplicate_dataset_is_rejected() -> None:
    with pytest.raises(ConfigurationFault):
        StatAttestationTree([])
    record = AssetStats(asset_id=1, hit_points=1, attack=1)
    with pytest.raises(ConfigurationFault):
        StatAttestationTree([record, record])


def test_validate_root(dataset_file: Path) -> None:
    attestation = StatAttestationTree.from_file(dataset_file)
    attestation.validate_root(attestation.root_hex().upper().replace("0X", "0x"))
    with pytest.raises(ConfigurationFault):
        attestation.validate_root("0x" + "00" * 32)


def test_validate_root_accepts_unprefixed_hex(dataset_file: Path) -> None:
    attestation = StatAttestationTree.from_file(dataset_file)
    attestation.validate_root(attestation.root_hex()[2:])
    attestation.validate_root(" " + attestation.root_hex().upper()[2:] + "\n")
    with pytest.raises(ConfigurationFault):
        attestation.validate_root("not-a-root")


def test_has_asset(two_asset_records: list[AssetStats]) -> None:
    attestation = StatAttestationTree(two_asset_records)
    assert attestation.has_asset(1)
    assert not attestation.has_asset(3)
