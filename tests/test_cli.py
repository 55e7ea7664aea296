import io
import json

import pytest

from mentormatch.cli import EXIT_ERROR, EXIT_INVALID_PROFILE, EXIT_OK, build_parser, main


@pytest.fixture
def profile_file(tmp_path, newcomer_payload):
    path = tmp_path / "newcomer.json"
    path.write_text(json.dumps(newcomer_payload()))
    return path


class TestMatchCommand:
    def test_prints_matches_as_json(self, profile_file, capsys):
        code = main(["match", str(profile_file)])

        assert code == EXIT_OK
        body = json.loads(capsys.readouterr().out)
        assert body["success"] is True
        assert body["search_method"] == "vector"
        assert body["matches"][0]["mentor"]["id"] == "marcus-rodriguez"

    def test_max_results(self, tmp_path, newcomer_payload, capsys):
        path = tmp_path / "broad.json"
        path.write_text(json.dumps(newcomer_payload(desired_expertise=[])))

        code = main(["match", str(path), "--max-results", "1", "--min-score", "0"])

        assert code == EXIT_OK
        body = json.loads(capsys.readouterr().out)
        assert len(body["matches"]) == 1
        assert body["total_count"] > 1

    def test_reads_stdin(self, newcomer_payload, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(newcomer_payload())))

        assert main(["match", "-"]) == EXIT_OK
        assert json.loads(capsys.readouterr().out)["matches"]

    def test_invalid_profile_exit_code(self, tmp_path, newcomer_payload, capsys):
        data = newcomer_payload()
        del data["logistics"]
        path = tmp_path / "invalid.json"
        path.write_text(json.dumps(data))

        code = main(["match", str(path)])

        assert code == EXIT_INVALID_PROFILE
        captured = capsys.readouterr()
        assert captured.out == ""
        assert '"success": false' in captured.err

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        assert main(["match", str(path)]) == EXIT_INVALID_PROFILE

    def test_missing_file(self, tmp_path):
        assert main(["match", str(tmp_path / "absent.json")]) == EXIT_ERROR

    def test_bad_preferences(self, profile_file):
        assert main(["match", str(profile_file), "--min-score", "3"]) == EXIT_ERROR


class TestIndexCommand:
    def test_indexes_configured_seed(self, capsys):
        code = main(["index"])

        assert code == EXIT_OK
        body = json.loads(capsys.readouterr().out)
        assert body["mentors"] == 8
        assert body["vectors"] == 16
        assert body["namespaces"]["mentors-all"] == 8
        assert body["vector_backend"] == "memory"

    def test_custom_mentor_file(self, tmp_path, capsys):
        path = tmp_path / "mentors.yaml"
        path.write_text(
            "mentors:\n"
            "  - id: solo\n"
            "    full_name: Solo Builder\n"
            "    primary_archetype: developer\n"
            "    specializations: [Rust]\n"
        )

        assert main(["index", "--mentors", str(path)]) == EXIT_OK
        body = json.loads(capsys.readouterr().out)
        assert body["mentors"] == 1
        assert body["namespaces"] == {"mentors-developer": 1, "mentors-all": 1}

    def test_missing_mentor_file(self, tmp_path):
        assert main(["index", "--mentors", str(tmp_path / "absent.yaml")]) == EXIT_ERROR


def test_no_command_prints_help(capsys):
    assert main([]) == EXIT_ERROR
    assert "mentormatch" in capsys.readouterr().out


def test_parser_defaults():
    args = build_parser().parse_args(["match", "profile.json"])

    assert args.max_results is None
    assert args.min_score is None
