"""Tests for report module."""

import json
from unittest.mock import patch

import pytest
from PIL import Image

from restage.errors import GenerationError
from restage.gate import QualityVerdict
from restage.images import ImageFile
from restage.pipeline import PipelineOutcome
from restage.report import (
    build_metadata,
    create_comparison_image,
    extension_for,
    render_log_html,
    save_failure,
    save_outcome,
)
from restage.transparency import TransparencyLog, label_images

from conftest import make_jpeg, make_png


@pytest.fixture
def outcome(product_images, target_image):
    generated = ImageFile.from_bytes(make_png('yellow', size=(120, 80)))
    run_log = TransparencyLog()
    run_log.append(
        'Pre-analysis for Logical Consistency', 'text-model', 'Analyze <these>',
        label_images(product_images, target_image), text='Replace one mug.'
    )
    run_log.append(
        'Product Replacement Image Generation', 'image-model', 'Edit',
        label_images(product_images, target_image), text='Done.', image=generated
    )
    return PipelineOutcome(
        final_image=generated.data,
        final_text='Done.',
        quality_critique='Accurate & realistic.',
        log=run_log.entries,
        final_image_mime='image/png',
        critical_instruction='Replace one mug.',
        verdict=QualityVerdict(True, 'sharp'),
    )


class TestRenderLogHtml:
    """Tests for the HTML process log."""

    def test_contains_every_step(self, outcome):
        html = render_log_html(outcome)

        assert 'Step 1: Pre-analysis for Logical Consistency' in html
        assert 'Step 2: Product Replacement Image Generation' in html
        assert 'image-model' in html

    def test_embeds_images_with_labels(self, outcome):
        html = render_log_html(outcome)

        assert 'Product Image 1' in html
        assert 'Marketing Image' in html
        assert outcome.log[1].output.image.data_url in html

    def test_escapes_prompt_text(self, outcome):
        html = render_log_html(outcome)

        assert 'Analyze &lt;these&gt;' in html
        assert 'Accurate &amp; realistic.' in html


class TestBuildMetadata:
    """Tests for run metadata."""

    def test_metadata_fields(self, outcome):
        metadata = build_metadata(outcome)

        assert metadata['quality_critique'] == 'Accurate & realistic.'
        assert metadata['critical_instruction'] == 'Replace one mug.'
        assert metadata['verdict'] == {'suitable': True, 'reasoning': 'sharp'}
        assert [step['step'] for step in metadata['log']] == [1, 2]

    def test_metadata_has_no_image_payloads(self, outcome):
        serialized = json.dumps(build_metadata(outcome))

        assert 'base64' not in serialized


class TestSaveOutcome:
    """Tests for writing an entry to disk."""

    def test_creates_entry_files(self, tmp_path, outcome, target_image):
        entry_dir = save_outcome(outcome, target_image, tmp_path)

        assert entry_dir.parent == tmp_path
        assert (entry_dir / 'result.png').read_bytes() == outcome.final_image
        assert (entry_dir / 'comparison.jpg').exists()
        assert (entry_dir / 'log.html').exists()

        with open(entry_dir / 'metadata.json') as f:
            metadata = json.load(f)
        assert metadata['entry_id'] == entry_dir.name
        assert metadata['result_image'] == 'result.png'
        assert metadata['comparison_image'] == 'comparison.jpg'

    def test_unique_entries(self, tmp_path, outcome, target_image):
        first = save_outcome(outcome, target_image, tmp_path)
        second = save_outcome(outcome, target_image, tmp_path)

        assert first != second

    def test_undecodable_result_skips_comparison(self, tmp_path, outcome, target_image):
        broken = PipelineOutcome(
            final_image=b'not an image',
            final_text=None,
            quality_critique='n/a',
            log=outcome.log,
            final_image_mime='image/webp',
        )

        entry_dir = save_outcome(broken, target_image, tmp_path)

        assert (entry_dir / 'result.webp').exists()
        assert not (entry_dir / 'comparison.jpg').exists()
        assert 'comparison_image' not in json.loads((entry_dir / 'metadata.json').read_text())


class TestSaveFailure:
    """Tests for writing the log of a failed run."""

    def test_writes_log_and_error(self, tmp_path, product_images, target_image):
        run_log = TransparencyLog()
        run_log.append(
            'Product Replacement Image Generation', 'image-model', 'Edit',
            label_images(product_images, target_image), text='I cannot do that.'
        )
        error = GenerationError(
            'The AI model failed to generate an image and responded with: "I cannot do that."',
            text='I cannot do that.',
            log=run_log.entries,
        )

        entry_dir = save_failure(error, tmp_path)

        html = (entry_dir / 'log.html').read_text()
        assert 'Step 1: Product Replacement Image Generation' in html
        assert 'Generation failed:' in html
        assert not list(entry_dir.glob('result.*'))

        metadata = json.loads((entry_dir / 'metadata.json').read_text())
        assert metadata['model_text'] == 'I cannot do that.'
        assert metadata['error'].startswith('The AI model failed')
        assert [step['step'] for step in metadata['log']] == [1]


class TestComparisonImage:
    """Tests for the side-by-side comparison."""

    def test_comparison_dimensions(self, tmp_path):
        output_path = tmp_path / 'comparison.jpg'

        create_comparison_image(make_jpeg(size=(100, 100)), make_png(size=(200, 100)), output_path)

        with Image.open(output_path) as img:
            assert img.height == 800
            assert img.width == 800 + 1600 + 10

    def test_source_images_are_closed(self, tmp_path):
        opened = []
        real_open = Image.open

        def tracking_open(fp, *args, **kwargs):
            img = real_open(fp, *args, **kwargs)
            opened.append(img)
            return img

        with patch('restage.report.Image.open', side_effect=tracking_open):
            create_comparison_image(make_jpeg(), make_png(), tmp_path / 'comparison.jpg')

        assert len(opened) == 2
        assert all(img.fp is None for img in opened)


class TestExtensionFor:

    def test_known_types(self):
        assert extension_for('image/jpeg') == '.jpg'
        assert extension_for('image/webp') == '.webp'

    def test_unknown_defaults_to_png(self):
        assert extension_for('image/bmp') == '.png'
