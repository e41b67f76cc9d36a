#!/usr/bin/env python3
"""
RESTAGE Report - Result Writer
Saves a finished run to disk and renders its process log as HTML.
"""

import io
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape
from PIL import Image

from restage.errors import GenerationError
from restage.images import ImageFile
from restage.pipeline import PipelineOutcome

log = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / 'templates'

_EXTENSIONS = {
    'image/png': '.png',
    'image/jpeg': '.jpg',
    'image/webp': '.webp',
    'image/gif': '.gif',
    'image/heic': '.heic',
    'image/heif': '.heif',
}

_jinja_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(['html'])
)


def extension_for(mime_type: str) -> str:
    return _EXTENSIONS.get(mime_type, '.png')


def _render_log(entries, critique=None, final_text=None, error=None) -> str:
    template = _jinja_env.get_template('log.html')
    return template.render(
        entries=entries,
        critique=critique,
        final_text=final_text,
        error=error,
        generated_at=datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
    )


def render_log_html(outcome: PipelineOutcome) -> str:
    """Render the step-by-step process log with inputs and outputs."""
    return _render_log(outcome.log, outcome.quality_critique, outcome.final_text)


def render_failure_html(error: GenerationError) -> str:
    """Render the steps that ran before generation failed."""
    return _render_log(error.log, error=str(error))


def build_metadata(outcome: PipelineOutcome) -> Dict[str, Any]:
    """Metadata for a run, without image payloads."""
    verdict = None
    if outcome.verdict is not None:
        verdict = {'suitable': outcome.verdict.suitable, 'reasoning': outcome.verdict.reasoning}

    return {
        'final_text': outcome.final_text,
        'quality_critique': outcome.quality_critique,
        'critical_instruction': outcome.critical_instruction,
        'verdict': verdict,
        'log': [entry.to_dict() for entry in outcome.log],
    }


def _resize_to_height(data: bytes, height: int) -> Image.Image:
    with Image.open(io.BytesIO(data)) as img:
        aspect = img.width / img.height
        return img.convert('RGB').resize((int(height * aspect), height), Image.Resampling.LANCZOS)


def create_comparison_image(original: bytes, edited: bytes, output_path: Path):
    """Create a side-by-side comparison image."""
    target_height = 800
    original_resized = _resize_to_height(original, target_height)
    edited_resized = _resize_to_height(edited, target_height)

    total_width = original_resized.width + edited_resized.width + 10
    comparison = Image.new('RGB', (total_width, target_height), 'white')

    comparison.paste(original_resized, (0, 0))
    comparison.paste(edited_resized, (original_resized.width + 10, 0))

    comparison.save(output_path, 'JPEG', quality=90)


def _new_entry(out_dir: Path) -> Tuple[Path, Dict[str, Any]]:
    timestamp = datetime.now().strftime('%Y%m%d-%H%M%S')
    entry_id = f"{timestamp}-{os.urandom(4).hex()}"
    entry_dir = Path(out_dir) / entry_id
    entry_dir.mkdir(parents=True, exist_ok=True)
    return entry_dir, {'entry_id': entry_id, 'timestamp': timestamp}


def save_outcome(outcome: PipelineOutcome, target: ImageFile, out_dir: Path) -> Path:
    """
    Write a finished run into a new entry directory.

    Args:
        outcome: Successful pipeline outcome
        target: The original marketing image, used for the comparison
        out_dir: Parent directory for entries

    Returns:
        Path to the created entry directory
    """
    entry_dir, metadata = _new_entry(out_dir)
    metadata.update(build_metadata(outcome))

    if outcome.final_image:
        result_name = f"result{extension_for(outcome.final_image_mime or 'image/png')}"
        (entry_dir / result_name).write_bytes(outcome.final_image)
        metadata['result_image'] = result_name

        try:
            create_comparison_image(target.data, outcome.final_image, entry_dir / 'comparison.jpg')
            metadata['comparison_image'] = 'comparison.jpg'
        except OSError as e:
            log.warning("Could not build comparison image: %s", e)

    with open(entry_dir / 'metadata.json', 'w') as f:
        json.dump(metadata, f, indent=2)

    (entry_dir / 'log.html').write_text(render_log_html(outcome), encoding='utf-8')

    log.info("Created entry: %s", metadata['entry_id'])
    return entry_dir


def save_failure(error: GenerationError, out_dir: Path) -> Path:
    """
    Write the log of a run whose generation step failed.

    Returns:
        Path to the created entry directory
    """
    entry_dir, metadata = _new_entry(out_dir)
    metadata.update({
        'error': str(error),
        'model_text': error.text,
        'log': [entry.to_dict() for entry in error.log],
    })

    with open(entry_dir / 'metadata.json', 'w') as f:
        json.dump(metadata, f, indent=2)

    (entry_dir / 'log.html').write_text(render_failure_html(error), encoding='utf-8')

    log.info("Created failure entry: %s", metadata['entry_id'])
    return entry_dir
