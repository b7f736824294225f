"""
CLI 테스트
===========
"""

import json

import pytest

from zkgrid.circuit_artifact import load_circuit
from zkgrid.cli import build_arg_parser, main
from zkgrid.commitment import commitment_to_hex, compute_commitment, derive_nullifier
from zkgrid.config import get_config
from zkgrid.plonk.field import CURVE_ORDER


class TestArgParser:
    def test_hex_and_decimal_ints(self):
        args = build_arg_parser().parse_args(["commit", "0x03", "5", "0x1e240"])
        assert (args.x, args.y, args.nullifier) == (3, 5, 123456)

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_arg_parser().parse_args([])

    def test_bad_int(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["commit", "zz", "5", "1"])
        assert excinfo.value.code == 2


class TestCommands:
    def test_commit(self, capsys):
        main(["--quiet", "commit", "3", "5", "123456"])
        out = capsys.readouterr().out.strip()
        assert out == commitment_to_hex(compute_commitment(3, 5, 123456))

    def test_nullifier(self, capsys):
        main(["nullifier", "4", "alice", "bob"])
        assert capsys.readouterr().out.strip() == str(derive_nullifier(4, "alice", "bob"))

    def test_compile_circuit(self, tmp_path, capsys):
        out = tmp_path / "circuit.json"
        main(["compile-circuit", str(out)])
        assert "gates=215" in capsys.readouterr().out
        assert load_circuit(out).circuit.n == 215

    def test_range_error_exit(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["commit", str(CURVE_ORDER), "5", "1"])
        assert excinfo.value.code == 1
        assert "RangeError" in capsys.readouterr().err


class TestConfigOptions:
    def test_config_file(self, tmp_path, capsys, restore_config):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"ledger": {"max_retries": 9}}), encoding="utf-8")
        main(["--config", str(path), "nullifier", "1", "a", "b"])
        assert get_config()["ledger"]["max_retries"] == 9
        assert get_config()["hash_profile"] == "poseidon2-bn254-t4-compact"

    def test_profile_option(self, capsys, restore_config):
        main(["--profile", "poseidon2-bn254-t4-compact", "commit", "1", "2", "3"])
        out = capsys.readouterr().out.strip()
        assert out == commitment_to_hex(compute_commitment(1, 2, 3, "poseidon2-bn254-t4-compact"))
        assert get_config()["hash_profile"] == "poseidon2-bn254-t4-compact"
