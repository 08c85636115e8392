from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .waveform import Waveform

MEASUREMENT_UNITS = {
    'QT Interval': 'ms',
    'QTc Interval': 'ms',
    'RR Interval': 'ms',
    'VRate': 'BPM',
    'QRS Duration': 'ms',
    'QRS Axis': '°',
    'T Axis': '°',
    'P Axis': '°',
    'PR Interval': 'ms',
}


@dataclass
class InfoEntry:
    key: str
    value: Any
    unit: str | None = None

    def to_dict(self) -> dict:
        entry = {'key': self.key, 'value': self.value}
        if self.unit is not None:
            entry['unit'] = self.unit
        return entry


def _number(value):
    """NumericValue as int when integral, float otherwise (first value if multi-valued)."""
    if isinstance(value, Sequence) and not isinstance(value, str):
        value = value[0] if value else None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return int(number) if number.is_integer() else number


def extract_info(dataset, waveform: Waveform) -> list[InfoEntry]:
    """Collect the measurements found in ``WaveformAnnotationSequence``.

    Args:
        dataset: the DICOM dataset (or keyword mapping).
        waveform: the decoded waveform, used to derive VRate from the
            RR interval when the device did not store it.

    Returns:
        The measurements in annotation order, VRate appended last when derived.
    """
    annotations = dataset.get('WaveformAnnotationSequence')
    if not annotations:
        return []

    info = []
    for annotation in annotations:
        for concept in annotation.get('ConceptNameCodeSequence') or []:
            meaning = concept.get('CodeMeaning')
            if meaning not in MEASUREMENT_UNITS:
                continue
            value = _number(annotation.get('NumericValue'))
            if value is not None:
                info.append(InfoEntry(str(meaning), value, MEASUREMENT_UNITS[meaning]))

    # If VRate is not defined we calculate ventricular rate from RR interval
    keys = [entry.key for entry in info]
    if 'VRate' not in keys and 'RR Interval' in keys:
        rr_interval = info[keys.index('RR Interval')].value
        if rr_interval:
            vrate = math.trunc(60.0 / waveform.duration * waveform.samples / rr_interval)
            info.append(InfoEntry('VRate', vrate, 'BPM'))

    return info


def extract_annotation(dataset) -> list[str]:
    """Free text annotations (e.g. the automatic interpretation) in order."""
    annotations = dataset.get('WaveformAnnotationSequence') or []
    return [
        str(note.get('UnformattedTextValue'))
        for note in annotations
        if note.get('UnformattedTextValue') is not None
    ]
