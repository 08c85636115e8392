# -*- coding: utf-8 -*-
"""ECG (waveform) Dicom module

Read DICOM ECG waveforms and render them as SVG.
"""

"""
The MIT License (MIT)

Copyright (c) 2013 Marco De Benedetto <debe@galliera.it>

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in
all copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
THE SOFTWARE.
"""
import copy
import io
import json
import logging
import os
from collections.abc import Mapping
from io import BytesIO

import pydicom as dicom
import requests
from pydicom.dataset import Dataset, FileMetaDataset
from pydicom.errors import InvalidDicomError
from pydicom.filereader import read_dataset
from pydicom.sequence import Sequence
from pydicom.uid import AllTransferSyntaxes as ALL_TRANSFER_SYNTAXES, UID

from .config import DEFAULT_TRANSFER_SYNTAX_UID, WADOSERVER
from .exceptions import ECGReadFileError
from .render import RenderOptions, RenderResult, render_dataset

__version__ = "1.0.0"
__license__ = "MIT"

logger = logging.getLogger(__name__)


def wadoget(stu, ser, obj, server=None):
    """Query the WADO server.

    @return: a buffer containing the DICOM object (the WADO response).
    @rtype: C{io.BytesIO}.
    """
    payload = {
        'requestType': 'WADO',
        'contentType': 'application/dicom',
        'studyUID': stu,
        'seriesUID': ser,
        'objectUID': obj
    }
    headers = {'content-type': 'application/json'}

    resp = requests.get(server or WADOSERVER, params=payload, headers=headers, timeout=30)
    resp.raise_for_status()
    return io.BytesIO(resp.content)


def dataset_from_elements(elements):
    """Build a dataset from a mapping of DICOM keywords.

    Lists of mappings become sequences of datasets.
    """
    ds = Dataset()
    for keyword, value in elements.items():
        if isinstance(value, list) and value and \
                all(isinstance(item, Mapping) for item in value):
            value = Sequence([dataset_from_elements(item) for item in value])
        setattr(ds, keyword, value)
    return ds


def _plain(value):
    if isinstance(value, Dataset):
        return {elem.keyword or str(elem.tag): _plain(elem.value) for elem in value}
    if isinstance(value, (list, Sequence)):
        return [_plain(item) for item in value]
    if isinstance(value, (bytes, bytearray)):
        return "<%d bytes>" % len(value)
    return value


class DicomEcg(object):
    """The class representing a DICOM ECG waveform object
    """

    def __init__(self, source=None, transfer_syntax_uid=None):
        """The DicomEcg class constructor.

        @param source: the ECG source, it could be a filename, a buffer,
        a file-like object, a pydicom dataset, a dict of DICOM keywords
        or a dict of study, serie, object info (to query a WADO server).
        @type source: C{str}, C{bytes}, C{Dataset} or C{dict}.
        @param transfer_syntax_uid: the dataset transfer syntax. When given
        together with a buffer, the buffer is read as a bare dataset
        (no preamble, no file meta information) encoded with this syntax.
        @type transfer_syntax_uid: C{str}.
        """
        if source is None:
            self.dicom = Dataset()
        elif isinstance(source, Dataset):
            self.dicom = source
        elif isinstance(source, Mapping):
            if set(source.keys()) == set(('stu', 'ser', 'obj')):
                self.dicom = self.read_dicom(wadoget(**source))
            else:
                self.dicom = dataset_from_elements(source)
        elif isinstance(source, (bytes, bytearray, memoryview)):
            self.dicom = self.read_dicom(BytesIO(bytes(source)), transfer_syntax_uid)
        elif isinstance(source, (str, os.PathLike)):
            with open(source, mode='rb') as f:
                self.dicom = self.read_dicom(BytesIO(f.read()), transfer_syntax_uid)
        elif hasattr(source, 'read'):
            self.dicom = self.read_dicom(source, transfer_syntax_uid)
        else:
            raise TypeError(
                "'source' must be a path/to/file.ext string, a buffer, a dataset,\n" +
                "a dictionary of elements or a dictionary of stu, ser and obj")

        file_meta = getattr(self.dicom, 'file_meta', None)
        self.transfer_syntax_uid = (
            transfer_syntax_uid or
            (file_meta.get('TransferSyntaxUID') if file_meta else None) or
            DEFAULT_TRANSFER_SYNTAX_UID
        )

    @staticmethod
    def read_dicom(inputdata, transfer_syntax_uid=None):
        """Parse a DICOM buffer.

        Without C{transfer_syntax_uid} the buffer must be a DICOM file
        (preamble, C{DICM} prefix and file meta information). With it, the
        buffer holds a bare dataset whose VR and byte order follow the
        given transfer syntax.

        @raise ECGReadFileError: if the buffer is not a DICOM dataset or
        the transfer syntax is unknown or deflated.
        """
        try:
            if transfer_syntax_uid is None:
                return dicom.dcmread(inputdata)

            tsuid = UID(transfer_syntax_uid)
            if tsuid not in ALL_TRANSFER_SYNTAXES or tsuid.is_deflated:
                raise InvalidDicomError(
                    "Transfer syntax is not supported [%s]" % transfer_syntax_uid)
            return read_dataset(inputdata, tsuid.is_implicit_VR, tsuid.is_little_endian)
        except InvalidDicomError as err:
            raise ECGReadFileError(err) from err

    @property
    def elements(self):
        """@ivar: the dicom dataset."""
        return self.dicom

    def get_element(self, keyword):
        """Return the element value or None if the element doesn't exist."""
        return self.dicom.get(keyword)

    def set_element(self, keyword, value):
        if isinstance(value, list) and value and \
                all(isinstance(item, Mapping) for item in value):
            value = Sequence([dataset_from_elements(item) for item in value])
        setattr(self.dicom, keyword, value)

    def to_bytes(self):
        """Encode the dataset as a DICOM file (preamble, file meta and
        dataset) using C{self.transfer_syntax_uid}.

        @rtype: C{bytes}
        """
        ds = copy.deepcopy(self.dicom)
        ds.file_meta = FileMetaDataset()
        ds.file_meta.TransferSyntaxUID = self.transfer_syntax_uid
        if 'SOPClassUID' in ds:
            ds.file_meta.MediaStorageSOPClassUID = ds.SOPClassUID
        if 'SOPInstanceUID' in ds:
            ds.file_meta.MediaStorageSOPInstanceUID = ds.SOPInstanceUID
        ds.preamble = b'\x00' * 128

        output = io.BytesIO()
        dicom.dcmwrite(output, ds)
        return output.getvalue()

    def render(self, **opts) -> RenderResult:
        """Render the ECG.

        @param opts: rendering options, C{speed} (mm/s, default 25),
        C{amplitude} (mm/mV, default 5) and C{apply_low_pass_filter}
        (40 Hz single pole filter, default False).
        @return: the rendering result, C{info} and C{svg}.
        @raise UnsupportedFormat: if the dataset is not a supported waveform.
        @raise InvalidGeometry: if the rendering area is empty.
        """
        options = RenderOptions.from_mapping(opts, stacklevel=3)
        return render_dataset(self.dicom, options)

    def __str__(self):
        str_ = ['DICOM ECG:', '=' * 50, json.dumps(_plain(self.dicom), default=str)]
        return '\n'.join(str_)
