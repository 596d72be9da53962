"""
Tests for the command line tools.

Run with: pytest tests/test_cli.py -v
"""

import logging

import numpy as np
import pytest
import yaml

from fpident.cli import capture, identifier, saver
from fpident.matching.decision import Decision, MatchResult
from fpident.storage.sqlite_store import SQLiteTemplateStore
from fpident.template.template import Finger
from fpident.utils.io import load_image, save_image


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logging.getLogger("fpident").handlers = []


@pytest.fixture
def ridge_png(tmp_path, ridge_image):
    path = tmp_path / "ridge.png"
    save_image(ridge_image, path)
    return path


@pytest.fixture
def blank_png(tmp_path):
    path = tmp_path / "blank.png"
    save_image(np.full((64, 64), 128, dtype=np.uint8), path)
    return path


@pytest.fixture
def config_file(tmp_path, ridge_codec_config):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "codec": {
            "border_margin": ridge_codec_config.border_margin,
            "spurious_distance": ridge_codec_config.spurious_distance,
            "min_minutiae": ridge_codec_config.min_minutiae,
        },
        "logging": {"level": "WARNING"},
    }))
    return path


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "db" / "fingers.sqlite"


def common_args(image, db, config):
    return ["--image", str(image), "--db", str(db), "--config", str(config)]


class TestSaver:

    def test_enroll(self, ridge_png, db_path, config_file, capsys):
        code = saver.main(
            ["alice", "--finger", "right-index"] + common_args(ridge_png, db_path, config_file)
        )

        assert code == 0
        assert capsys.readouterr().out.strip() == "Enrolled alice: 1 template(s)"

        records = SQLiteTemplateStore(db_path).load_all()
        assert [r.user_id for r in records] == ["alice"]
        assert records[0].finger is Finger.RIGHT_INDEX

    def test_enroll_count(self, ridge_png, db_path, config_file, capsys):
        code = saver.main(["bob", "--count", "3"] + common_args(ridge_png, db_path, config_file))

        assert code == 0
        assert "3 template(s)" in capsys.readouterr().out
        assert SQLiteTemplateStore(db_path).count() == 3

    def test_blank_scan_fails(self, blank_png, db_path, config_file, capsys):
        code = saver.main(["alice"] + common_args(blank_png, db_path, config_file))

        assert code == 1
        assert "encoding failed" in capsys.readouterr().err
        assert SQLiteTemplateStore(db_path).count() == 0

    def test_missing_image_prints_prompt(self, tmp_path, db_path, config_file, capsys):
        code = saver.main(["alice"] + common_args(tmp_path / "none.png", db_path, config_file))

        err = capsys.readouterr().err
        assert code == 1
        assert "capturing failed" in err
        assert "device error" in err

    def test_missing_config(self, ridge_png, db_path, tmp_path, capsys):
        code = saver.main(["alice"] + common_args(ridge_png, db_path, tmp_path / "nope.yaml"))

        assert code == 1
        assert "not found" in capsys.readouterr().err

    def test_invalid_config(self, ridge_png, db_path, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text(yaml.safe_dump({"decision": {"match_threshold": 3}}))

        assert saver.main(["alice"] + common_args(ridge_png, db_path, bad)) == 1

    def test_bad_finger(self, ridge_png, db_path, config_file):
        with pytest.raises(SystemExit) as exc_info:
            saver.main(["alice", "--finger", "toe"] + common_args(ridge_png, db_path, config_file))
        assert exc_info.value.code == 2

    @pytest.mark.parametrize("argv", [["  "], ["alice", "--count", "0"]])
    def test_invalid_arguments(self, argv):
        with pytest.raises(SystemExit) as exc_info:
            saver.main(argv)
        assert exc_info.value.code == 2


class TestIdentifier:

    def test_identifies_enrolled_user(self, ridge_png, db_path, config_file, capsys):
        args = common_args(ridge_png, db_path, config_file)
        assert saver.main(["alice"] + args) == 0
        capsys.readouterr()

        code = identifier.main(args)

        assert code == 0
        assert capsys.readouterr().out.strip() == "alice"

    def test_empty_database(self, ridge_png, db_path, config_file, capsys):
        SQLiteTemplateStore(db_path, create_schema=True)

        code = identifier.main(common_args(ridge_png, db_path, config_file))

        assert code == 0
        assert capsys.readouterr().out.strip() == "no match"

    def test_missing_database_fails(self, ridge_png, db_path, config_file, capsys):
        code = identifier.main(common_args(ridge_png, db_path, config_file))

        assert code == 1
        assert "loading failed" in capsys.readouterr().err
        assert not db_path.exists()

    def test_unknown_binarization_method(self, ridge_png, db_path, tmp_path, capsys):
        bad = tmp_path / "bad.yaml"
        bad.write_text(yaml.safe_dump({"codec": {"binarization_method": "bogus"}}))

        code = identifier.main(common_args(ridge_png, db_path, bad))

        assert code == 1
        assert "binarization" in capsys.readouterr().err

    def test_ambiguous(self, ridge_png, db_path, config_file, capsys):
        args = common_args(ridge_png, db_path, config_file)
        assert saver.main(["alice"] + args) == 0
        assert saver.main(["bob"] + args) == 0
        capsys.readouterr()

        assert identifier.main(args) == 0
        assert capsys.readouterr().out.strip() == "ambiguous"

    def test_identification_does_not_write(self, ridge_png, db_path, config_file):
        args = common_args(ridge_png, db_path, config_file)
        saver.main(["alice"] + args)

        identifier.main(args)
        identifier.main(args)

        assert SQLiteTemplateStore(db_path).count() == 1

    def test_blank_scan_fails(self, blank_png, db_path, config_file, capsys):
        assert identifier.main(common_args(blank_png, db_path, config_file)) == 1
        assert "encoding failed" in capsys.readouterr().err


class TestCapture:

    def test_saves_scan(self, ridge_png, ridge_image, tmp_path, config_file, capsys):
        output = tmp_path / "out" / "scan.png"

        code = capture.main([str(output), "--image", str(ridge_png), "--config", str(config_file)])

        assert code == 0
        assert capsys.readouterr().out.strip() == str(output)
        assert np.array_equal(load_image(output), ridge_image)

    def test_missing_source(self, tmp_path, config_file, capsys):
        code = capture.main([
            str(tmp_path / "scan.png"),
            "--image", str(tmp_path / "missing"),
            "--config", str(config_file),
        ])

        assert code == 1
        assert "not found" in capsys.readouterr().err


def test_format_result():
    assert identifier.format_result(
        MatchResult(best_index=0, score=1.0, decision=Decision.MATCH, user_id="alice")
    ) == "alice"
    assert identifier.format_result(
        MatchResult(best_index=None, score=0.0, decision=Decision.NO_MATCH)
    ) == "no match"
