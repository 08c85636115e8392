"""Waveform decoding.

Turns the ``WaveformSequence`` of a DICOM waveform object into calibrated
millivolt signals, one :class:`Lead` per channel.

The dataset may be a :class:`pydicom.dataset.Dataset` or any mapping of
DICOM keywords; only ``get(keyword, default)`` is used.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from scipy.signal import lfilter

from .config import ALLOWED_SOP_CLASS_UIDS, DEFAULT_CUTOFF_FREQUENCY
from .exceptions import UnsupportedFormat

logger = logging.getLogger(__name__)

LEAD_NAMES = {
    ('MDC', '2:1'): 'Lead I',
    ('MDC', '2:2'): 'Lead II',
    ('MDC', '2:61'): 'Lead III',
    ('MDC', '2:62'): 'Lead aVR',
    ('MDC', '2:63'): 'Lead aVL',
    ('MDC', '2:64'): 'Lead aVF',
    ('MDC', '2:3'): 'Lead V1',
    ('MDC', '2:4'): 'Lead V2',
    ('MDC', '2:5'): 'Lead V3',
    ('MDC', '2:6'): 'Lead V4',
    ('MDC', '2:7'): 'Lead V5',
    ('MDC', '2:8'): 'Lead V6',
    ('SCPECG', '5.6.3-9-1'): 'Lead I',
    ('SCPECG', '5.6.3-9-2'): 'Lead II',
    ('SCPECG', '5.6.3-9-61'): 'Lead III',
    ('SCPECG', '5.6.3-9-62'): 'Lead aVR',
    ('SCPECG', '5.6.3-9-63'): 'Lead aVL',
    ('SCPECG', '5.6.3-9-64'): 'Lead aVF',
    ('SCPECG', '5.6.3-9-3'): 'Lead V1',
    ('SCPECG', '5.6.3-9-4'): 'Lead V2',
    ('SCPECG', '5.6.3-9-5'): 'Lead V3',
    ('SCPECG', '5.6.3-9-6'): 'Lead V4',
    ('SCPECG', '5.6.3-9-7'): 'Lead V5',
    ('SCPECG', '5.6.3-9-8'): 'Lead V6',
}

# conversion factor to obtain millivolts values
MILLIVOLTS = {'uV': 1000.0, 'mV': 1.0}


def first_item(sequence):
    """Return the first populated item of a DICOM sequence, or None."""
    if not sequence:
        return None
    return next((item for item in sequence if item), None)


def lead_name(source_item) -> str:
    """Canonical lead label for a ``ChannelSourceSequence`` item.

    Known MDC and SCPECG codes map to ``Lead I`` ... ``Lead V6``; anything
    else falls back to the item's CodeMeaning.
    """
    if source_item is None:
        return ''
    meaning = source_item.get('CodeMeaning') or ''
    key = (source_item.get('CodingSchemeDesignator'), source_item.get('CodeValue'))
    if key not in LEAD_NAMES:
        logger.debug("Unknown lead code %s:%s, using %r", key[0], key[1], str(meaning))
        return str(meaning)
    return LEAD_NAMES[key]


@dataclass(frozen=True)
class ChannelDefinition:
    bits_stored: int
    sensitivity: float | None = None
    sensitivity_correction_factor: float | None = None
    baseline: float = 0.0
    unit: str | None = None
    source: str = ''

    @classmethod
    def from_item(cls, item, index: int) -> 'ChannelDefinition':
        bits_stored = item.get('WaveformBitsStored')
        if bits_stored != 16:
            raise UnsupportedFormat(
                "Waveform bits stored definition is not supported "
                "[channel %d: %s]" % (index, bits_stored))

        sensitivity = item.get('ChannelSensitivity')
        correction = item.get('ChannelSensitivityCorrectionFactor')
        baseline = item.get('ChannelBaseline')

        units = first_item(item.get('ChannelSensitivityUnitsSequence'))
        unit = units.get('CodeValue') if units is not None else None

        return cls(
            bits_stored=bits_stored,
            sensitivity=float(sensitivity) if sensitivity is not None else None,
            sensitivity_correction_factor=(
                float(correction) if correction is not None else None),
            baseline=float(baseline) if baseline is not None else 0.0,
            unit=str(unit) if unit is not None else None,
            source=lead_name(first_item(item.get('ChannelSourceSequence'))),
        )

    @property
    def factor(self) -> float:
        if self.sensitivity is None or self.sensitivity_correction_factor is None:
            return 1.0
        return self.sensitivity * self.sensitivity_correction_factor

    @property
    def millivolt_divisor(self) -> float:
        if self.unit is None:
            return 1.0
        if self.unit not in MILLIVOLTS:
            logger.warning("Unknown channel sensitivity unit %r, assuming mV", self.unit)
            return 1.0
        return MILLIVOLTS[self.unit]


def _waveform_bytes(value) -> bytes | None:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, (list, tuple)):
        return _waveform_bytes(first_item(value))
    return None


@dataclass(frozen=True)
class WaveformRecord:
    """Typed view of the first populated ``WaveformSequence`` item.

    Every "element may be missing" check happens in :meth:`from_dataset`;
    later stages rely on the fields being present and valid.
    """

    channels: int
    samples: int
    sampling_frequency: float
    channel_definitions: tuple[ChannelDefinition, ...]
    data: bytes

    @classmethod
    def from_dataset(cls, dataset) -> 'WaveformRecord':
        sop_class = dataset.get('SOPClassUID')
        if sop_class not in ALLOWED_SOP_CLASS_UIDS:
            raise UnsupportedFormat("SOP class UID is not supported [%s]" % sop_class)

        item = first_item(dataset.get('WaveformSequence'))
        if item is None:
            raise UnsupportedFormat("WaveformSequence is empty")

        interpretation = item.get('WaveformSampleInterpretation')
        if interpretation != 'SS':
            raise UnsupportedFormat(
                "Waveform sample interpretation is not supported [%s]" % interpretation)
        bits_allocated = item.get('WaveformBitsAllocated')
        if bits_allocated != 16:
            raise UnsupportedFormat(
                "Waveform bits allocated is not supported [%s]" % bits_allocated)

        definitions = item.get('ChannelDefinitionSequence')
        if not definitions:
            raise UnsupportedFormat("ChannelDefinitionSequence is empty")

        declared = item.get('NumberOfWaveformChannels')
        if declared != len(definitions):
            logger.warning(
                "Waveform number of channels [%s] is not equal to channel definition "
                "sequence length [%d]. Proceeding with channel definition sequence length.",
                declared, len(definitions))

        channel_definitions = tuple(
            ChannelDefinition.from_item(definition, i)
            for i, definition in enumerate(definitions))

        samples = int(item.get('NumberOfWaveformSamples') or 0)
        if samples <= 0:
            raise UnsupportedFormat("Number of waveform samples is not supported [%s]" % samples)
        sampling_frequency = float(item.get('SamplingFrequency') or 0.0)
        if sampling_frequency <= 0:
            raise UnsupportedFormat(
                "Sampling frequency is not supported [%s]" % sampling_frequency)

        data = _waveform_bytes(item.get('WaveformData'))
        if not data:
            raise UnsupportedFormat("WaveformData is empty")

        return cls(
            channels=len(channel_definitions),
            samples=samples,
            sampling_frequency=sampling_frequency,
            channel_definitions=channel_definitions,
            data=data,
        )

    def demultiplex(self) -> np.ndarray:
        """Raw int16 samples as a ``(channels, samples)`` float array."""
        needed = self.channels * self.samples
        available = len(self.data) // 2
        if available < needed:
            raise UnsupportedFormat(
                "WaveformData holds %d samples, expected %d (%d channels x %d samples)"
                % (available, needed, self.channels, self.samples))

        raw = np.frombuffer(self.data, dtype='<i2', count=needed)
        return raw.astype(np.float64).reshape(self.samples, self.channels).T.copy()


@dataclass(frozen=True)
class Lead:
    signal: np.ndarray
    min: float
    max: float
    source: str = ''


@dataclass(frozen=True)
class Waveform:
    channels: int
    samples: int
    sampling_frequency: float
    leads: tuple[Lead, ...]
    min: float
    max: float
    min_max: float

    @property
    def duration(self) -> float:
        return self.samples / self.sampling_frequency


def low_pass_filter(samples, cutoff: float, sample_rate: float) -> np.ndarray:
    """Single-pole RC low-pass filter.

    ``y[0] = x[0]`` and ``y[i] = y[i-1] + alpha * (x[i] - y[i-1])`` with
    ``alpha = dt / (rc + dt)``. Returns a new array.

    Parameters
    ----------
    samples : array_like
        One channel of samples.
    cutoff : float
        Cut off frequency in Hz.
    sample_rate : float
        Sampling frequency in Hz.
    """
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        return x.copy()

    rc = 1.0 / (cutoff * 2.0 * np.pi)
    dt = 1.0 / sample_rate
    alpha = dt / (rc + dt)

    y, _ = lfilter([alpha], [1.0, alpha - 1.0], x, zi=[(1.0 - alpha) * x[0]])
    return y


def decode_waveform(dataset,
                    apply_low_pass_filter: bool = False,
                    cutoff: float = DEFAULT_CUTOFF_FREQUENCY) -> Waveform:
    """Decode and calibrate the waveform of ``dataset``.

    Calibration is ``(raw + baseline) * factor`` per channel, then the
    optional low-pass filter, then conversion to millivolts.

    Raises
    ------
    UnsupportedFormat
        If the dataset is not a signed 16 bit waveform object of an
        allowed SOP class.
    """
    record = WaveformRecord.from_dataset(dataset)
    definitions = record.channel_definitions

    baseline = np.array([d.baseline for d in definitions])[:, np.newaxis]
    factor = np.array([d.factor for d in definitions])[:, np.newaxis]
    signals = (record.demultiplex() + baseline) * factor

    if apply_low_pass_filter:
        signals = np.vstack([
            low_pass_filter(signal, cutoff, record.sampling_frequency)
            for signal in signals
        ])

    divisor = np.array([d.millivolt_divisor for d in definitions])[:, np.newaxis]
    signals = signals / divisor

    leads = []
    for signal, definition in zip(signals, definitions):
        signal = signal.copy()
        signal.setflags(write=False)
        leads.append(Lead(
            signal=signal,
            min=float(signal.min()),
            max=float(signal.max()),
            source=definition.source,
        ))

    low = min(lead.min for lead in leads)
    high = max(lead.max for lead in leads)

    logger.debug("Decoded %d channels x %d samples at %s Hz",
                 record.channels, record.samples, record.sampling_frequency)

    return Waveform(
        channels=record.channels,
        samples=record.samples,
        sampling_frequency=record.sampling_frequency,
        leads=tuple(leads),
        min=low,
        max=high,
        min_max=max(abs(low), abs(high)),
    )
