import json

from marksheet_ocr.cli import main
from marksheet_ocr.config import get_config


def test_json_output_for_text_marksheet(make_file, sample_text, capsys):
    path = make_file("sheet.txt", sample_text.encode("utf-8"))

    assert main([str(path), "--no-vision", "--json"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["student_name"] == "PRIYA SHARMA"
    assert data["register_number"] == "21CS1042"
    assert data["method"] == "ocr"
    assert len(data["subjects"]) == 3
    assert data["stats"]["fallback_reasons"] == ["VisionExtractor: not configured"]
    assert path.exists()


def test_no_vision_leaves_shared_config_untouched(make_file, sample_text, capsys):
    path = make_file("sheet.txt", sample_text.encode("utf-8"))
    shared = get_config()
    shared.ai.enabled = True

    assert main([str(path), "--no-vision", "--json"]) == 0

    assert get_config() is shared
    assert shared.ai.enabled is True
    assert json.loads(capsys.readouterr().out)["method"] == "ocr"


def test_form_output(make_file, sample_text, capsys):
    path = make_file("sheet.txt", sample_text.encode("utf-8"))

    assert main([str(path), "--no-vision", "--form"]) == 0

    form = json.loads(capsys.readouterr().out)
    assert form["regNo"] == "21CS1042"
    assert [row["name"] for row in form["subjects"]] == ["MATHEMATICS", "ENGLISH", "Physics Practical"]


def test_table_output(make_file, sample_text, capsys):
    path = make_file("sheet.txt", sample_text.encode("utf-8"))

    assert main([str(path), "--no-vision"]) == 0
    assert "PRIYA SHARMA" in capsys.readouterr().out


def test_failure_exit_code(make_file, capsys):
    path = make_file("blank.txt", b"\n")

    assert main([str(path), "--no-vision", "--json"]) == 1

    data = json.loads(capsys.readouterr().out)
    assert data["success"] is False
    assert data["details"]["backends_tried"] == ["LocalExtractor"]


def test_missing_file(tmp_path):
    assert main([str(tmp_path / "missing.png")]) == 1
