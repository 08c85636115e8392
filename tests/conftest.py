import numpy as np
import pytest

from dicomecg.ecg import dataset_from_elements

GENERAL_ECG = '1.2.840.10008.5.1.4.1.1.9.1.2'


def interleave(channels):
    """Pack per-channel int16 samples into a little-endian round-robin buffer."""
    return np.asarray(channels, dtype='<i2').T.tobytes()


def make_elements(channels,
                  sampling_frequency=500,
                  unit='mV',
                  sensitivity=None,
                  correction=None,
                  baseline=None,
                  sources=None,
                  annotations=None,
                  sop_class=GENERAL_ECG,
                  declared_channels=None):
    definitions = []
    for i in range(len(channels)):
        definition = {'WaveformBitsStored': 16}
        if unit is not None:
            definition['ChannelSensitivityUnitsSequence'] = [{'CodeValue': unit}]
        if sensitivity is not None:
            definition['ChannelSensitivity'] = sensitivity
        if correction is not None:
            definition['ChannelSensitivityCorrectionFactor'] = correction
        if baseline is not None:
            definition['ChannelBaseline'] = baseline
        if sources is not None:
            definition['ChannelSourceSequence'] = [sources[i]]
        definitions.append(definition)

    elements = {
        'SOPClassUID': sop_class,
        'WaveformSequence': [{
            'NumberOfWaveformChannels': (
                len(channels) if declared_channels is None else declared_channels),
            'NumberOfWaveformSamples': len(channels[0]),
            'SamplingFrequency': sampling_frequency,
            'WaveformBitsAllocated': 16,
            'WaveformSampleInterpretation': 'SS',
            'ChannelDefinitionSequence': definitions,
            'WaveformData': interleave(channels),
        }],
    }
    if annotations:
        elements['WaveformAnnotationSequence'] = annotations
    return elements


@pytest.fixture
def ecg_dataset():
    """Factory building a pydicom dataset for the given channels."""
    def factory(channels, **kwargs):
        return dataset_from_elements(make_elements(channels, **kwargs))
    return factory


@pytest.fixture
def scenario_elements():
    return {
        'SOPClassUID': GENERAL_ECG,
        'WaveformSequence': [{
            'NumberOfWaveformChannels': 1,
            'NumberOfWaveformSamples': 2,
            'SamplingFrequency': 2,
            'WaveformBitsAllocated': 16,
            'WaveformSampleInterpretation': 'SS',
            'ChannelDefinitionSequence': [{
                'WaveformBitsStored': 16,
                'ChannelSensitivityUnitsSequence': [{'CodeValue': 'uV'}],
            }],
            'WaveformData': bytes([0x7f, 0x7f, 0x81, 0x81]),
        }],
        'WaveformAnnotationSequence': [
            {'UnformattedTextValue': 'ECG NORMAL'},
            {
                'ConceptNameCodeSequence': [{'CodeMeaning': 'QRS Duration'}],
                'NumericValue': '120',
            },
        ],
    }
