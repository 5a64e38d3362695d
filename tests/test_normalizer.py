import re
import unittest

from testgen_components.errors import ContentExtractionError
from testgen_components.models import TranscriptSegment
from testgen_components.normalizer import (
    TRUNCATION_MARKER,
    budget_excerpt,
    extract_page_title,
    format_timestamp,
    html_to_text,
    normalize_plain_lines,
    normalize_segments,
    parse_json3_events,
    parse_xml_captions,
)

ARTICLE_BODY = "Tides are driven by the moon and the sun acting on the oceans of the earth. " * 3


def _timestamps(text):
    return [int(m) * 60 + int(s) for m, s in re.findall(r'\[(\d{2}):(\d{2})\]', text)]


class TestTimestamps(unittest.TestCase):
    def test_format_timestamp(self):
        self.assertEqual(format_timestamp(0), '00:00')
        self.assertEqual(format_timestamp(65.9), '01:05')
        self.assertEqual(format_timestamp(3599), '59:59')

    def test_segments_sorted_by_start(self):
        segments = [
            TranscriptSegment(30.0, 2.0, 'third'),
            TranscriptSegment(0.0, 2.0, 'first'),
            TranscriptSegment(12.5, 2.0, 'second'),
            TranscriptSegment(95.0, 2.0, 'fourth'),
        ]
        text = normalize_segments(segments)

        self.assertEqual(text, '[00:00] first [00:12] second [00:30] third [01:35] fourth')
        stamps = _timestamps(text)
        self.assertEqual(stamps, sorted(stamps))

    def test_blank_segments_dropped(self):
        segments = [TranscriptSegment(0.0, 1.0, '  '), TranscriptSegment(1.0, 1.0, 'hello\n  world')]
        self.assertEqual(normalize_segments(segments), '[00:01] hello world')

    def test_plain_lines_get_pseudo_timestamps(self):
        text = normalize_plain_lines("Hello\n\nthere\nfriend\n")
        self.assertEqual(text, '[00:00] Hello [00:05] there [00:10] friend')


class TestCaptionFormats(unittest.TestCase):
    def test_json3_events(self):
        data = {'events': [
            {'tStartMs': 1500, 'dDurationMs': 2000, 'segs': [{'utf8': 'Hello'}, {'utf8': 'world'}]},
            {'tStartMs': 4000},
            {'tStartMs': 5000, 'segs': [{'utf8': '\n'}]},
            {'tStartMs': 7000, 'segs': [{'utf8': 'again'}]},
        ]}
        segments = parse_json3_events(data)

        self.assertEqual(len(segments), 2)
        self.assertEqual(segments[0].start_seconds, 1.5)
        self.assertEqual(segments[0].duration_seconds, 2.0)
        self.assertEqual(segments[0].text, 'Hello world')
        self.assertEqual(segments[1].duration_seconds, 1.0)

    def test_srv1_xml(self):
        xml = ('<?xml version="1.0" encoding="utf-8" ?><transcript>'
               '<text start="0.5" dur="1.5">Rock &amp;amp; roll</text>'
               '<text start="2" dur="1">it&amp;#39;s <font color="#fff">fine</font></text>'
               '</transcript>')
        segments = parse_xml_captions(xml)

        self.assertEqual([s.text for s in segments], ["Rock & roll", "it's fine"])
        self.assertEqual(segments[1].start_seconds, 2.0)

    def test_srv3_xml(self):
        xml = '<timedtext><body><p t="1200" d="3400">Hi there</p><p t="5000" d="100"> </p></body></timedtext>'
        segments = parse_xml_captions(xml)

        self.assertEqual(len(segments), 1)
        self.assertEqual(segments[0].start_seconds, 1.2)
        self.assertAlmostEqual(segments[0].duration_seconds, 3.4)

    def test_empty_xml(self):
        self.assertEqual(parse_xml_captions(''), [])


class TestArticleText(unittest.TestCase):
    def test_scripts_and_styles_removed(self):
        page = (f"<html><head><title>Tides</title><style>p {{color: red}}</style></head>"
                f"<body><script>var x = 1;</script><p>{ARTICLE_BODY}</p></body></html>")
        text = html_to_text(page)

        self.assertNotIn('var x', text)
        self.assertNotIn('color', text)
        self.assertIn('Tides are driven', text)

    def test_short_extraction_is_a_failure(self):
        with self.assertRaises(ContentExtractionError):
            html_to_text('<html><body><script>' + 'x' * 500 + '</script><p>Too short</p></body></html>')

    def test_page_title(self):
        self.assertEqual(extract_page_title('<title>  Tides \n explained </title>'), 'Tides explained')
        self.assertIsNone(extract_page_title('<p>no title</p>'))


class TestBudgetExcerpt(unittest.TestCase):
    def test_short_text_is_cut_at_budget(self):
        text = 'a' * 7000
        self.assertEqual(budget_excerpt(text, 6000), 'a' * 6000)

    def test_long_text_keeps_beginning_middle_and_end(self):
        text = ''.join(chr(ord('a') + (i // 1000) % 26) for i in range(20000))
        excerpt = budget_excerpt(text, 6000)

        beginning, middle, end = excerpt.split(TRUNCATION_MARKER)
        self.assertEqual(beginning, text[:2400])
        self.assertEqual(middle, text[10000 - 1800:10000 + 1800])
        self.assertEqual(end, text[-2400:])


if __name__ == '__main__':
    unittest.main()
