"""Render a decoded waveform on ECG grid paper as SVG.

Each lead gets its own horizontal band of ``lead_height`` pixels, with a
1 mm / 5 mm grid and the trace scaled symmetrically around the band centre
by ``ceil(min_max)`` millivolts.
"""
from __future__ import annotations

import logging
import math
import re
import warnings
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field

import numpy as np

from .config import DEFAULT_CUTOFF_FREQUENCY, PIXELS_PER_MM, RENDERING_DEFAULTS, RenderingDefaults
from .exceptions import InvalidGeometry
from .info import InfoEntry, extract_annotation, extract_info
from .primitives import Segment
from .svg import SvgWriter
from .waveform import Lead, Waveform, decode_waveform

logger = logging.getLogger(__name__)

_OPTION_NAMES = {
    'speed': 'speed',
    'amplitude': 'amplitude',
    'apply_low_pass_filter': 'apply_low_pass_filter',
    'applyLowPassFilter': 'apply_low_pass_filter',
    'cutoff': 'cutoff',
}

_LEGACY_OPTION_NAMES = {
    'millimeter_per_second': 'speed',
    'millimeterPerSecond': 'speed',
    'millimeter_per_millivolt': 'amplitude',
    'millimeterPerMillivolt': 'amplitude',
}

_TITLE_CHARS = re.compile(r'[^a-zA-Z0-9_ ]')


@dataclass(frozen=True)
class RenderOptions:
    speed: float = RENDERING_DEFAULTS.millimeter_per_second
    amplitude: float = RENDERING_DEFAULTS.millimeter_per_millivolt
    apply_low_pass_filter: bool = False
    cutoff: float = DEFAULT_CUTOFF_FREQUENCY

    @classmethod
    def from_mapping(cls, opts: Mapping | None = None, stacklevel: int = 2) -> 'RenderOptions':
        """Build options from keyword style settings.

        ``None`` values and unknown keys are ignored. The legacy
        ``millimeter_per_second`` / ``millimeter_per_millivolt`` names are
        still accepted but the current names win when both are given.
        ``stacklevel`` points the deprecation warning at the calling code.
        """
        values = {}
        for key, value in (opts or {}).items():
            if value is None:
                continue
            if key in _LEGACY_OPTION_NAMES:
                name = _LEGACY_OPTION_NAMES[key]
                warnings.warn(
                    "%r is deprecated, use %r instead" % (key, name),
                    DeprecationWarning, stacklevel=stacklevel)
                values.setdefault(name, value)
            elif key in _OPTION_NAMES:
                values[_OPTION_NAMES[key]] = value

        for name in ('speed', 'amplitude', 'cutoff'):
            if name in values:
                values[name] = float(values[name])
        if 'apply_low_pass_filter' in values:
            values['apply_low_pass_filter'] = bool(values['apply_low_pass_filter'])
        return cls(**values)


@dataclass
class RenderResult:
    svg: str
    info: list[InfoEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {'info': [entry.to_dict() for entry in self.info], 'svg': self.svg}


def translate(value, min_value, max_value, new_min, new_max):
    """Linear map of ``value`` from ``[min_value, max_value]`` to ``[new_min, new_max]``.

    No clamping; works on scalars and numpy arrays.
    """
    scaled = (value - min_value) / (max_value - min_value)
    return new_min + scaled * (new_max - new_min)


def layout(waveform: Waveform, options: RenderOptions) -> tuple[int, int, int]:
    """Return ``(width, height, lead_height)`` in pixels.

    Raises
    ------
    InvalidGeometry
        If width or height is not a positive finite number.
    """
    leads = len(waveform.leads)
    width = options.speed * PIXELS_PER_MM * waveform.samples / waveform.sampling_frequency
    height = options.amplitude * PIXELS_PER_MM * math.ceil(waveform.min_max) * 2 * leads
    if not (math.isfinite(width) and math.isfinite(height)):
        raise InvalidGeometry(
            "Rendering area is not finite (speed %s mm/s, amplitude %s mm/mV)"
            % (options.speed, options.amplitude))
    width, height = math.floor(width), math.floor(height)
    if width <= 0 or height <= 0:
        raise InvalidGeometry(
            "Rendering area is empty [%d x %d] (speed %s mm/s, amplitude %s mm/mV, "
            "peak %s mV)" % (width, height, options.speed, options.amplitude, waveform.min_max))
    return width, height, math.floor(height / leads)


def _render_lead_grid(svg: SvgWriter, index: int, width: int, lead_height: int,
                      defaults: RenderingDefaults):
    top = index * lead_height
    bottom = top + lead_height
    color = defaults.grid_foreground_color

    svg.rect(0.0, top, width, lead_height,
             defaults.grid_background_color, color, defaults.grid_border_width)

    major, minor = [], []
    for i in range(math.floor(lead_height / PIXELS_PER_MM)):
        y = top + i * PIXELS_PER_MM
        (major if i % 5 == 0 else minor).append(Segment(0.0, y, width, y))
    svg.path(major, color, defaults.major_grid_width)
    svg.path(minor, color, defaults.minor_grid_width)

    major, minor = [], []
    for i in range(math.floor(width / PIXELS_PER_MM)):
        x = i * PIXELS_PER_MM
        (major if i % 5 == 0 else minor).append(Segment(x, top, x, bottom))
    svg.path(major, color, defaults.major_grid_width)
    svg.path(minor, color, defaults.minor_grid_width)


def _render_lead_signal(svg: SvgWriter, waveform: Waveform, lead: Lead, index: int,
                        width: int, lead_height: int, defaults: RenderingDefaults):
    half_height = lead_height / 2.0
    bound = math.ceil(waveform.min_max)

    xs = (width / waveform.samples) * np.arange(waveform.samples)
    ys = index * lead_height + (
        half_height - translate(lead.signal, -bound, bound, -half_height, half_height))
    xs, ys = xs.tolist(), ys.tolist()

    segments = [
        Segment(x1, y1, x2, y2)
        for x1, y1, x2, y2 in zip(xs[:-1], ys[:-1], xs[1:], ys[1:])
    ]
    svg.path(segments, defaults.signal_color, defaults.signal_width)


def _render_lead_title(svg: SvgWriter, lead: Lead, index: int, lead_height: int,
                       defaults: RenderingDefaults):
    svg.text(2.0, index * lead_height + 10,
             _TITLE_CHARS.sub('', lead.source or ''),
             defaults.text_color, defaults.title_font_size, defaults.title_font_weight)


def render(waveform: Waveform,
           info: list[InfoEntry] | None = None,
           options: RenderOptions | None = None,
           annotation: list[str] | None = None,
           defaults: RenderingDefaults = RENDERING_DEFAULTS) -> RenderResult:
    """Draw every lead of ``waveform`` and complete the info list.

    ``info`` is copied, then extended with the annotation (when present),
    sampling frequency, duration, speed and amplitude. Geometry is checked
    before any markup is produced.
    """
    options = options or RenderOptions()
    width, height, lead_height = layout(waveform, options)

    info = list(info or [])
    if annotation:
        info.append(InfoEntry('Annotation', list(annotation)))
    info.append(InfoEntry('Sampling Frequency', waveform.sampling_frequency, 'Hz'))
    info.append(InfoEntry('Duration', waveform.duration, 'sec'))
    info.append(InfoEntry('Speed', options.speed, 'mm/sec'))
    info.append(InfoEntry('Amplitude', options.amplitude, 'mm/mV'))

    svg = SvgWriter(width, height, defaults.paper_background_color)
    for index, lead in enumerate(waveform.leads):
        _render_lead_grid(svg, index, width, lead_height, defaults)
        _render_lead_signal(svg, waveform, lead, index, width, lead_height, defaults)
        _render_lead_title(svg, lead, index, lead_height, defaults)

    logger.debug("Rendered %d leads on %d x %d px", len(waveform.leads), width, height)
    return RenderResult(svg=svg.to_xml_string(), info=info)


def render_dataset(dataset, options: RenderOptions | Mapping | None = None,
                   **overrides) -> RenderResult:
    """Decode ``dataset`` and render it; nothing is returned on failure."""
    if isinstance(options, RenderOptions):
        if overrides:
            options = RenderOptions.from_mapping({**asdict(options), **overrides}, stacklevel=3)
    else:
        options = RenderOptions.from_mapping({**(options or {}), **overrides}, stacklevel=3)

    waveform = decode_waveform(dataset, options.apply_low_pass_filter, options.cutoff)
    info = extract_info(dataset, waveform)
    return render(waveform, info, options, annotation=extract_annotation(dataset))
