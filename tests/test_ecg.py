import io
import os
import xml.etree.ElementTree as ET

import pydicom as dicom
import pytest
from pydicom.dataset import Dataset
from pydicom.errors import InvalidDicomError

from dicomecg import __main__ as cli
from dicomecg.ecg import DicomEcg, dataset_from_elements
from dicomecg.exceptions import ECGReadFileError

PATIENT = {'PatientName': 'JOHN^DOE', 'PatientID': '123456', 'Modality': 'ECG'}


def test_empty():
    ecg = DicomEcg()
    assert isinstance(ecg.elements, Dataset)
    assert ecg.transfer_syntax_uid == '1.2.840.10008.1.2'


def test_elements():
    ecg = DicomEcg(PATIENT)
    ecg.set_element('Manufacturer', 'ACME')

    assert str(ecg.get_element('PatientName')) == 'JOHN^DOE'
    assert ecg.get_element('Manufacturer') == 'ACME'
    assert ecg.get_element('StudyDescription') is None


def test_dataset_source():
    ds = dataset_from_elements(PATIENT)
    assert DicomEcg(ds).elements is ds


def test_set_sequence_element():
    ecg = DicomEcg(PATIENT)
    ecg.set_element('WaveformAnnotationSequence', [{'UnformattedTextValue': 'ECG NORMAL'}])
    assert ecg.elements.WaveformAnnotationSequence[0].UnformattedTextValue == 'ECG NORMAL'


def test_round_trip():
    ecg = DicomEcg(PATIENT)
    ecg.set_element('Manufacturer', 'ACME')
    buffer = ecg.to_bytes()

    assert buffer[128:132] == b'DICM'

    decoded = DicomEcg(buffer)
    assert str(decoded.get_element('PatientName')) == 'JOHN^DOE'
    assert decoded.get_element('PatientID') == '123456'
    assert decoded.get_element('Manufacturer') == 'ACME'
    assert decoded.transfer_syntax_uid == '1.2.840.10008.1.2'


def test_round_trip_keeps_waveform(scenario_elements):
    buffer = DicomEcg(scenario_elements).to_bytes()
    result = DicomEcg(io.BytesIO(buffer)).render(speed=20, amplitude=10)
    assert [entry.key for entry in result.info][:2] == ['QRS Duration', 'Annotation']


def test_path_source(tmp_path, scenario_elements):
    path = tmp_path / 'ecg.dcm'
    path.write_bytes(DicomEcg(scenario_elements).to_bytes())

    assert DicomEcg(str(path)).elements.SOPClassUID == scenario_elements['SOPClassUID']
    assert DicomEcg(path).elements.SOPClassUID == scenario_elements['SOPClassUID']


def test_not_a_dicom():
    with pytest.raises(ECGReadFileError):
        DicomEcg(b'this is not a dicom file')


def test_bad_source():
    with pytest.raises(TypeError):
        DicomEcg(42)


def test_str():
    lines = str(DicomEcg(PATIENT)).split('\n')
    assert lines[0] == 'DICOM ECG:'
    assert lines[1] == '=' * 50
    assert 'JOHN^DOE' in lines[2]


class FakeResponse(object):

    def __init__(self, content):
        self.content = content

    def raise_for_status(self):
        pass


def test_wado(monkeypatch):
    calls = []
    buffer = DicomEcg(PATIENT).to_bytes()

    def fake_get(url, params=None, headers=None, timeout=None):
        calls.append((url, params))
        return FakeResponse(buffer)

    monkeypatch.setattr('dicomecg.ecg.requests.get', fake_get)
    ecg = DicomEcg({'stu': '1.2.3', 'ser': '4.5.6', 'obj': '7.8.9'})

    assert str(ecg.get_element('PatientName')) == 'JOHN^DOE'
    url, params = calls[0]
    assert params == {
        'requestType': 'WADO',
        'contentType': 'application/dicom',
        'studyUID': '1.2.3',
        'seriesUID': '4.5.6',
        'objectUID': '7.8.9',
    }


def test_cli(tmp_path, scenario_elements, capsys):
    source = tmp_path / 'ecg.dcm'
    source.write_bytes(DicomEcg(scenario_elements).to_bytes())
    output = tmp_path / 'out' / 'ecg.svg'

    cli.main([str(source), str(output), '--speed', '20', '--amplitude', '10'])

    root = ET.fromstring(output.read_bytes())
    assert root.attrib['width'] == '75'
    out = capsys.readouterr().out
    assert 'QRS Duration: 120 ms' in out
    assert 'Annotation: ECG NORMAL' in out
    assert 'Wrote SVG:' in out


def test_cli_refuses_existing_output(tmp_path, scenario_elements):
    source = tmp_path / 'ecg.dcm'
    source.write_bytes(DicomEcg(scenario_elements).to_bytes())
    output = tmp_path / 'ecg.svg'
    output.write_text('keep me')

    with pytest.raises(SystemExit) as exc:
        cli.main([str(source), str(output)])
    assert exc.value.code == 2
    assert output.read_text() == 'keep me'


def test_cli_unsupported(tmp_path, scenario_elements, capsys):
    scenario_elements['SOPClassUID'] = '1.2.3.4'
    source = tmp_path / 'ecg.dcm'
    source.write_bytes(DicomEcg(scenario_elements).to_bytes())

    with pytest.raises(SystemExit) as exc:
        cli.main([str(source), str(tmp_path / 'ecg.svg')])
    assert exc.value.code == 2
    assert 'SOP class UID is not supported' in capsys.readouterr().err
    assert not (tmp_path / 'ecg.svg').exists()


def bare_dataset(implicit_vr):
    buffer = io.BytesIO()
    dicom.dcmwrite(buffer, dataset_from_elements(PATIENT), implicit_vr=implicit_vr, little_endian=True)
    return buffer.getvalue()


@pytest.mark.parametrize('implicit_vr, transfer_syntax_uid', [
    (True, '1.2.840.10008.1.2'),
    (False, '1.2.840.10008.1.2.1'),
])
def test_bare_dataset(implicit_vr, transfer_syntax_uid):
    ecg = DicomEcg(bare_dataset(implicit_vr), transfer_syntax_uid=transfer_syntax_uid)

    assert str(ecg.get_element('PatientName')) == 'JOHN^DOE'
    assert ecg.get_element('Modality') == 'ECG'
    assert ecg.transfer_syntax_uid == transfer_syntax_uid


@pytest.mark.parametrize('transfer_syntax_uid', ['1.2.3.4', '1.2.840.10008.1.2.1.99'])
def test_unsupported_transfer_syntax(transfer_syntax_uid):
    with pytest.raises(ECGReadFileError, match='Transfer syntax is not supported'):
        DicomEcg(bare_dataset(True), transfer_syntax_uid=transfer_syntax_uid)


def test_read_error_keeps_cause():
    with pytest.raises(ECGReadFileError) as exc:
        DicomEcg(b'this is not a dicom file')
    assert isinstance(exc.value.__cause__, InvalidDicomError)


def test_legacy_render_option_warning_points_at_caller(scenario_elements):
    with pytest.warns(DeprecationWarning) as record:
        DicomEcg(scenario_elements).render(millimeterPerSecond=20)
    assert os.path.basename(record[0].filename) == 'test_ecg.py'
