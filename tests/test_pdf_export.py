from reportlab.lib.pagesizes import LETTER
from reportlab.pdfbase.pdfmetrics import stringWidth

from frontdesk.pdf_export import LEFT, RIGHT, _Writer


class _RecordingCanvas:
    def __init__(self):
        self.drawn = []
        self.pages = 1

    def setFont(self, name, size):
        pass

    def showPage(self):
        self.pages += 1

    def drawString(self, x, y, text):
        self.drawn.append(text)


def test_long_lines_wrap_instead_of_truncating():
    c = _RecordingCanvas()
    width, height = LETTER
    w = _Writer(c, width, height)
    text = " ".join(f"note{i}" for i in range(120))

    w.line(text, indent=24)

    assert len(c.drawn) > 1
    assert " ".join(c.drawn) == text
    limit = width - LEFT - RIGHT - 24
    assert all(stringWidth(chunk, "Helvetica", 11) <= limit for chunk in c.drawn)


def test_wrapped_lines_break_onto_new_pages():
    c = _RecordingCanvas()
    width, height = LETTER
    w = _Writer(c, width, height)

    w.line(" ".join(["elevator out of service"] * 400))

    assert c.pages > 1


def test_empty_line_still_advances_cursor():
    c = _RecordingCanvas()
    width, height = LETTER
    w = _Writer(c, width, height)
    start = w.y

    w.line("")

    assert c.drawn == [""]
    assert w.y < start
