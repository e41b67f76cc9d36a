"""Tests for transparency module."""

import dataclasses

import pytest

from restage.images import ImageFile
from restage.transparency import LabeledImage, TransparencyLog, label_images


@pytest.fixture
def image():
    return ImageFile(data=b'abc', data_url='data:image/png;base64,YWJj')


class TestLabelImages:
    """Tests for label_images."""

    def test_products_then_target(self, image):
        labeled = label_images([image, image], image)

        assert [item.label for item in labeled] == [
            'Product Image 1', 'Product Image 2', 'Marketing Image'
        ]

    def test_products_only(self, image):
        labeled = label_images([image])

        assert [item.label for item in labeled] == ['Product Image 1']

    def test_custom_target_label_and_extra(self, image):
        labeled = label_images(
            [image], image,
            target_label='Original Marketing Image',
            extra=[LabeledImage('Generated Image', image)]
        )

        assert [item.label for item in labeled] == [
            'Product Image 1', 'Original Marketing Image', 'Generated Image'
        ]

    def test_images_are_referenced_not_copied(self, image):
        labeled = label_images([image], image)

        assert labeled[0].image is image


class TestTransparencyLog:
    """Tests for TransparencyLog."""

    def test_step_numbers_follow_append_order(self, image):
        run_log = TransparencyLog()

        first = run_log.append('First', 'model-a', 'prompt 1', [])
        second = run_log.append('Second', 'model-b', 'prompt 2', [], text='out')

        assert first.step == 1
        assert second.step == 2
        assert len(run_log) == 2
        assert [entry.title for entry in run_log.entries] == ['First', 'Second']

    def test_entries_is_a_snapshot(self):
        run_log = TransparencyLog()
        run_log.append('First', 'model', 'prompt', [])

        snapshot = run_log.entries
        run_log.append('Second', 'model', 'prompt', [])

        assert len(snapshot) == 1
        assert len(run_log.entries) == 2

    def test_entries_are_frozen(self):
        run_log = TransparencyLog()
        entry = run_log.append('First', 'model', 'prompt', [])

        with pytest.raises(dataclasses.FrozenInstanceError):
            entry.title = 'Changed'

    def test_to_dict_without_images(self, image):
        run_log = TransparencyLog()
        entry = run_log.append(
            'Generation', 'image-model', 'prompt',
            label_images([image], image), text='done', image=image
        )

        data = entry.to_dict()

        assert data['step'] == 1
        assert data['model'] == 'image-model'
        assert data['input']['images'] == [
            {'label': 'Product Image 1'}, {'label': 'Marketing Image'}
        ]
        assert data['output'] == {'text': 'done', 'image': 'image/png'}

    def test_to_dict_with_images(self, image):
        run_log = TransparencyLog()
        entry = run_log.append('Generation', 'm', 'p', label_images([image]), image=image)

        data = entry.to_dict(include_images=True)

        assert data['input']['images'][0]['base64'] == image.data_url
        assert data['output']['image'] == image.data_url
        assert data['output']['text'] is None
