#!/usr/bin/env python3
"""
RESTAGE Transparency - Ordered record of every model call in a run.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from restage.images import ImageFile


@dataclass(frozen=True)
class LabeledImage:
    label: str
    image: ImageFile


@dataclass(frozen=True)
class LogInput:
    prompt: str
    images: Tuple[LabeledImage, ...] = ()


@dataclass(frozen=True)
class LogOutput:
    text: Optional[str] = None
    image: Optional[ImageFile] = None


@dataclass(frozen=True)
class LogEntry:
    """One pipeline step: what was sent to which model and what came back."""

    step: int
    title: str
    model: str
    input: LogInput
    output: LogOutput = field(default_factory=LogOutput)

    def to_dict(self, include_images: bool = False) -> Dict[str, Any]:
        """
        JSON-ready view of the entry.

        Args:
            include_images: Embed data URLs instead of only the labels
        """
        images: List[Dict[str, str]] = []
        for labeled in self.input.images:
            item = {'label': labeled.label}
            if include_images:
                item['base64'] = labeled.image.data_url
            images.append(item)

        output: Dict[str, Any] = {'text': self.output.text}
        if self.output.image is not None:
            output['image'] = self.output.image.data_url if include_images else self.output.image.mime_type
        else:
            output['image'] = None

        return {
            'step': self.step,
            'title': self.title,
            'model': self.model,
            'input': {'prompt': self.input.prompt, 'images': images},
            'output': output,
        }


def label_images(
    products: Sequence[ImageFile],
    target: Optional[ImageFile] = None,
    target_label: str = 'Marketing Image',
    extra: Sequence[LabeledImage] = ()
) -> Tuple[LabeledImage, ...]:
    """Label images in the order they are sent to the model."""
    labeled = [LabeledImage(f"Product Image {i}", img) for i, img in enumerate(products, 1)]
    if target is not None:
        labeled.append(LabeledImage(target_label, target))
    labeled.extend(extra)
    return tuple(labeled)


class TransparencyLog:
    """Append-only log; step numbers are assigned in append order starting at 1."""

    def __init__(self):
        self._entries: List[LogEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[LogEntry, ...]:
        return tuple(self._entries)

    def append(
        self,
        title: str,
        model: str,
        prompt: str,
        images: Sequence[LabeledImage],
        text: Optional[str] = None,
        image: Optional[ImageFile] = None
    ) -> LogEntry:
        entry = LogEntry(
            step=len(self._entries) + 1,
            title=title,
            model=model,
            input=LogInput(prompt=prompt, images=tuple(images)),
            output=LogOutput(text=text, image=image),
        )
        self._entries.append(entry)
        return entry
