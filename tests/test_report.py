"""Tests for prompt context, narrative parsing, history store and report formatting."""

import json
from pathlib import Path

import pytest
from feats_metrics.core.errors import HistoryError
from feats_metrics.core.history import AnalysisRecord, HistoryStore
from feats_metrics.core.prompt import USER_PROMPT, build_context, build_prompt, format_hues, parse_narrative
from feats_metrics.core.report import format_history, format_json, format_text
from feats_metrics.core.types import ColorBucket, CVMetrics, DominantColor, Emotion, Report


def _metrics(method: str = 'inference') -> CVMetrics:
    return CVMetrics(
        white_space_ratio=0.42,
        dominant_colors=[DominantColor(ColorBucket.BLUE, 61.5), DominantColor(ColorBucket.YELLOW, 38.5)],
        line_visibility_score=0.8,
        rebellion_score=0.2,
        fill_consistency_score=0.73,
        method=method,
    )


class TestContext:
    def test_numbers_rendered(self):
        text = build_context(_metrics())
        assert 'White Space Ratio: 42.0%' in text
        assert 'Blue (62%), Yellow (38%)' in text
        assert 'Rebellion Score: 20.0% (inferred from remaining line ink)' in text
        assert 'Fill Consistency Score: 73/100' in text

    def test_template_method_label(self):
        assert 'measured against the blank template' in build_context(_metrics('template'))

    def test_emotion_defaults(self):
        text = build_context(_metrics())
        assert 'Primary: Unknown' in text
        assert 'Tertiary: N/A' in text

    def test_emotion(self):
        text = build_context(_metrics(), Emotion.parse('Joy, Excited, Playful'))
        assert 'Primary: Joy' in text
        assert 'Secondary: Excited' in text
        assert 'Tertiary: Playful' in text

    def test_no_hues(self):
        metrics = _metrics()
        metrics.dominant_colors = []
        assert format_hues(metrics) == 'none detected'

    def test_prompt_without_context(self):
        assert build_prompt() == USER_PROMPT

    def test_prompt_with_context(self):
        prompt = build_prompt(build_context(_metrics()))
        assert prompt.startswith(USER_PROMPT)
        assert 'HARD DATA' in prompt


class TestEmotion:
    def test_two_parts(self):
        emotion = Emotion.parse('Sad,Lonely')
        assert emotion.tertiary is None
        assert emotion.to_dict() == {'primary': 'Sad', 'secondary': 'Lonely', 'tertiary': None}

    @pytest.mark.parametrize('text', ['Joy', '', 'a,b,c,d', ' , '])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            Emotion.parse(text)


class TestParseNarrative:
    ANSWER = {
        'visual_evidence': ['Bold blue fills', 'Colour stays inside lines'],
        'personality_snapshot': 'Careful and calm.',
        'disclaimer': 'Not a clinical assessment.',
    }

    def test_plain_json(self):
        narrative = parse_narrative(json.dumps(self.ANSWER))
        assert narrative.visual_evidence == self.ANSWER['visual_evidence']
        assert narrative.to_dict() == self.ANSWER

    def test_fenced_json(self):
        text = '```json\n' + json.dumps(self.ANSWER) + '\n```'
        assert parse_narrative(text).personality_snapshot == 'Careful and calm.'

    def test_camel_case_keys(self):
        text = json.dumps(
            {'visualEvidence': ['x'], 'personalitySnapshot': 'y', 'disclaimer': 'z'},
        )
        assert parse_narrative(text).visual_evidence == ['x']

    def test_not_json(self):
        with pytest.raises(ValueError, match='not JSON'):
            parse_narrative('The drawing is lovely.')

    def test_not_an_object(self):
        with pytest.raises(ValueError, match='not an object'):
            parse_narrative('[1, 2]')

    def test_missing_key(self):
        with pytest.raises(ValueError, match='visual_evidence'):
            parse_narrative(json.dumps({'personality_snapshot': 'y', 'disclaimer': 'z'}))


class TestHistoryStore:
    def test_put_and_get(self, tmp_path: Path):
        store = HistoryStore(tmp_path / 'history.json')
        record = AnalysisRecord.new('art.png', _metrics().to_dict(), user_name='Sam')
        store.put(record)
        loaded = store.get(record.id)
        assert loaded == record

    def test_get_missing(self, tmp_path: Path):
        assert HistoryStore(tmp_path / 'history.json').get('nope') is None

    def test_put_replaces_same_id(self, tmp_path: Path):
        store = HistoryStore(tmp_path / 'history.json')
        record = AnalysisRecord.new('art.png', {'white_space_ratio': 0.1})
        store.put(record)
        record.metrics = {'white_space_ratio': 0.9}
        store.put(record)
        assert len(store.list_recent()) == 1
        assert store.get(record.id).metrics == {'white_space_ratio': 0.9}

    def test_list_recent_newest_first(self, tmp_path: Path):
        store = HistoryStore(tmp_path / 'nested' / 'history.json')
        for i, ts in enumerate([100.0, 300.0, 200.0]):
            store.put(AnalysisRecord(id=f'r{i}', image_path=f'{i}.png', timestamp=ts, metrics={}))
        assert [r.id for r in store.list_recent()] == ['r1', 'r2', 'r0']
        assert [r.id for r in store.list_recent(limit=2)] == ['r1', 'r2']

    def test_file_format(self, tmp_path: Path):
        path = tmp_path / 'history.json'
        HistoryStore(path).put(AnalysisRecord(id='a', image_path='x.png', timestamp=1.0, metrics={}))
        data = json.loads(path.read_text())
        assert data['records'][0]['id'] == 'a'
        assert not (tmp_path / 'history.json.tmp').exists()

    def test_corrupt_file(self, tmp_path: Path):
        path = tmp_path / 'history.json'
        path.write_text('{"records": [')
        with pytest.raises(HistoryError, match='cannot read history'):
            HistoryStore(path).list_recent()

    @pytest.mark.parametrize('content', ['[]', '{"records": 3}', '{"records": [{"image_path": "a.png"}]}'])
    def test_wrong_shape(self, tmp_path: Path, content: str):
        path = tmp_path / 'history.json'
        path.write_text(content)
        with pytest.raises(HistoryError, match='not a feats-tool history file'):
            HistoryStore(path).put(AnalysisRecord.new('x.png', {}))
        assert path.read_text() == content


class TestFormat:
    def _report(self) -> Report:
        report = Report(image_path='art.png', image_width=640, image_height=480, template_path='blank.png')
        report.add('metrics', _metrics('template').to_dict())
        report.add('boundary', {'error': 'no template'})
        return report

    def test_text(self):
        text = format_text(self._report())
        assert text.startswith('feats-tool: art.png (640×480)')
        assert 'template blank.png' in text
        assert 'white space: 42.0%' in text
        assert 'Blue:61.5%, Yellow:38.5%' in text
        assert 'rebellion: 0.20 (template)' in text
        assert 'error: no template' in text

    def test_generic_section(self):
        report = Report(image_path='art.png')
        report.add('custom', {'answer': 42})
        assert 'custom.answer: 42' in format_text(report)

    def test_json(self):
        obj = json.loads(format_json(self._report()))
        assert obj['image'] == 'art.png'
        assert obj['dimensions'] == {'width': 640, 'height': 480}
        assert obj['template'] == 'blank.png'
        assert obj['sections']['metrics']['method'] == 'template'

    def test_history_empty(self):
        assert format_history([]) == 'No analyses recorded.'

    def test_history_lines(self):
        record = AnalysisRecord(
            id='0123456789', image_path='/pics/art.png', timestamp=0.0, metrics=_metrics().to_dict(), user_name='Sam'
        )
        line = format_history([record])
        assert '01234567 [Sam]  art.png' in line
        assert 'space=42.0%' in line
        assert 'rebellion=0.20' in line
