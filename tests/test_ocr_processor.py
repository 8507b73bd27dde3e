import fitz
import pytest
import pytesseract
from PIL import Image

from marksheet_ocr.exceptions import (
    DocumentReadError,
    ExtractionTimeoutError,
    OCRError,
    TesseractNotFoundError,
    UnsupportedMediaTypeError,
)
from marksheet_ocr.models import ExtractionStats, ResultStatus, ValueSource
from marksheet_ocr.processors import ocr_processor
from marksheet_ocr.processors.ocr_processor import LocalExtractor, group_words
from marksheet_ocr.processors.orchestrator import MarksheetExtractor

from conftest import FakeExtractor


def _words(*rows):
    """Build an image_to_data style dict from (line_num, left, width, text, conf) rows."""
    data = {k: [] for k in ("text", "conf", "block_num", "par_num", "line_num", "left", "width", "height")}
    for line_num, left, width, text, conf in rows:
        data["text"].append(text)
        data["conf"].append(conf)
        data["block_num"].append(1)
        data["par_num"].append(1)
        data["line_num"].append(line_num)
        data["left"].append(left)
        data["width"].append(width)
        data["height"].append(20)
    return data


SCAN_WORDS = _words(
    (1, 10, 60, "Name:", 90),
    (1, 80, 60, "PRIYA", 80),
    (1, 150, 70, "SHARMA", 70),
    (2, 10, 80, "ENGLISH", 95),
    (2, 200, 20, "20", 85),
    (2, 260, 20, "55", 75),
    (2, 320, 50, "PASS", 85),
)


SCAN_WORDS_STRONG = (
    (1, 10, 60, "Name:", 94),
    (1, 80, 60, "PRIYA", 90),
    (1, 150, 70, "SHARMA", 92),
    (2, 10, 80, "ENGLISH", 95),
    (2, 200, 20, "20", 88),
    (2, 260, 20, "55", 90),
    (2, 320, 50, "PASS", 93),
)


@pytest.fixture
def png_file(tmp_path):
    path = tmp_path / "scan.png"
    Image.new("RGB", (400, 120), "white").save(path)
    return path


def _fake_image_to_data(data):
    def _image_to_data(image, **kwargs):
        return data
    return _image_to_data


# ==================== WORD GROUPING ====================

def test_group_words_keeps_column_gaps():
    page = group_words(SCAN_WORDS, min_word_conf=20)
    assert page.lines == ["Name: PRIYA SHARMA", "ENGLISH  20  55  PASS"]
    assert len(page.confidences) == 7


def test_group_words_drops_blank_and_low_confidence_words_from_text():
    data = _words(
        (1, 10, 80, "TAMIL", "91.5"),
        (1, 95, 10, "~", 3),
        (1, 0, 0, "  ", -1),
        (1, 200, 20, "81", 88),
    )
    page = group_words(data, min_word_conf=20)
    assert page.lines == ["TAMIL  81"]
    assert page.confidences == [91.5, 3.0, 88.0]


def test_group_words_empty():
    page = group_words({}, min_word_conf=20)
    assert page.lines == []
    assert page.confidences == []


# ==================== DOCUMENT TYPES ====================

def test_text_document(config, make_file, sample_text):
    path = make_file("sheet.txt", sample_text.encode("utf-8"))
    stats = ExtractionStats()

    marksheet = LocalExtractor(config).extract(path, "text/plain", stats)

    assert marksheet.method == "ocr"
    assert marksheet.confidence == 90
    assert marksheet.student_name == "PRIYA SHARMA"
    assert marksheet.register_number == "21CS1042"
    assert marksheet.total_marks == "230"
    assert marksheet.total_marks_source == ValueSource.DOCUMENT
    assert marksheet.overall_result == ResultStatus.PASS
    assert [s.marks for s in marksheet.subjects] == [70, 75, 85]

    assert stats.lines_total == 10
    assert stats.subjects_found == 3
    assert stats.lines_skipped == 7
    assert stats.lines_rejected == 0


def test_image_uses_tesseract_confidence(config, png_file, monkeypatch):
    monkeypatch.setattr(ocr_processor.pytesseract, "image_to_data", _fake_image_to_data(SCAN_WORDS))

    marksheet = LocalExtractor(config).extract(png_file, "image/png", ExtractionStats())

    assert marksheet.confidence == 83
    assert marksheet.student_name == "PRIYA SHARMA"
    (subject,) = marksheet.subjects
    assert (subject.subject_name, subject.marks) == ("ENGLISH", 75)


def test_pdf_text_layer_is_read_directly(config, tmp_path):
    path = tmp_path / "result.pdf"
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Name: PRIYA SHARMA\nRegister Number: 21CS1042", fontsize=11)
    doc.save(str(path))
    doc.close()

    raw = LocalExtractor(config).recognize(path, "application/pdf")

    assert raw.engine == "pymupdf"
    assert raw.confidence is None
    assert raw.page_count == 1
    assert "21CS1042" in raw.text


def test_scanned_pdf_is_rendered_and_ocred(config, tmp_path, monkeypatch):
    path = tmp_path / "scan.pdf"
    doc = fitz.open()
    doc.new_page(width=200, height=100)
    doc.save(str(path))
    doc.close()
    config.ocr.render_dpi = 72
    monkeypatch.setattr(ocr_processor.pytesseract, "image_to_data", _fake_image_to_data(SCAN_WORDS))

    raw = LocalExtractor(config).recognize(path, "application/pdf")

    assert raw.engine == "tesseract"
    assert raw.text == "Name: PRIYA SHARMA\nENGLISH  20  55  PASS"
    assert raw.confidence == 83



def test_weak_words_lower_the_image_confidence(config, png_file, monkeypatch):
    noise = [(3, 10 + 30 * i, 10, "~", 10) for i in range(7)]
    data = _words(*SCAN_WORDS_STRONG, *noise)
    monkeypatch.setattr(ocr_processor.pytesseract, "image_to_data", _fake_image_to_data(data))

    local = LocalExtractor(config)
    vision = FakeExtractor(config, name="Vision", available=False)
    outcome = MarksheetExtractor(config, vision=vision, local=local).extract(png_file, "image/png")

    # mean over all 14 words, not just the 7 kept ones
    assert outcome.confidence == 51
    assert outcome.warning is not None
    assert outcome.student_name == "PRIYA SHARMA"
    assert [s.subject_name for s in outcome.subjects] == ["ENGLISH"]


# ==================== ERRORS ====================

def test_empty_text_is_a_failure(config, make_file):
    path = make_file("blank.txt", b"  \n\n")
    with pytest.raises(OCRError):
        LocalExtractor(config).extract(path, "text/plain", ExtractionStats())


def test_missing_file(config, tmp_path):
    with pytest.raises(DocumentReadError):
        LocalExtractor(config).extract(tmp_path / "gone.png", "image/png", ExtractionStats())


def test_undecodable_image(config, make_file):
    path = make_file("scan.png", b"definitely not a png")
    with pytest.raises(DocumentReadError):
        LocalExtractor(config).extract(path, "image/png", ExtractionStats())


def test_unsupported_media_type(config, make_file):
    extractor = LocalExtractor(config)
    assert not extractor.supports("application/zip")
    with pytest.raises(UnsupportedMediaTypeError):
        extractor.extract(make_file("scan.zip"), "application/zip", ExtractionStats())


def test_missing_tesseract_binary(config, png_file, monkeypatch):
    def _not_installed(image, **kwargs):
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(ocr_processor.pytesseract, "image_to_data", _not_installed)
    with pytest.raises(TesseractNotFoundError):
        LocalExtractor(config).extract(png_file, "image/png", ExtractionStats())


def test_tesseract_timeout(config, png_file, monkeypatch):
    def _slow(image, **kwargs):
        raise RuntimeError("Tesseract process timeout")

    monkeypatch.setattr(ocr_processor.pytesseract, "image_to_data", _slow)
    with pytest.raises(ExtractionTimeoutError):
        LocalExtractor(config).extract(png_file, "image/png", ExtractionStats())
