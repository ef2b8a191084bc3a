import pytest
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile

from workflow.exceptions import InvalidArgument, StorageFailure
from workflow.services import storage

PDF_ONLY = ['.pdf']


def test_store_saves_file_and_returns_descriptor(media_root):
    upload = SimpleUploadedFile('chest scan.pdf', b'%PDF-1.4 body', content_type='application/pdf')
    descriptor = storage.store(upload, 'hospital_reports', PDF_ONLY)

    assert descriptor['originalFilename'] == 'chest scan.pdf'
    assert descriptor['storageId'].startswith('hospital_reports/')
    assert descriptor['storageId'].endswith('_chest_scan.pdf')
    assert descriptor['url'].startswith('/media/hospital_reports/')
    assert (media_root / descriptor['storageId']).read_bytes() == b'%PDF-1.4 body'


def test_store_requires_a_file():
    with pytest.raises(InvalidArgument):
        storage.store(None, 'hospital_reports', PDF_ONLY)


@pytest.mark.parametrize('name', ['notes.txt', 'archive', 'scan.PDF.exe'])
def test_store_rejects_other_extensions(media_root, name):
    with pytest.raises(InvalidArgument):
        storage.store(SimpleUploadedFile(name, b'x'), 'hospital_reports', PDF_ONLY)


def test_extension_check_is_case_insensitive(media_root):
    descriptor = storage.store(SimpleUploadedFile('SCAN.PDF', b'x'), 'hospital_reports', PDF_ONLY)
    assert descriptor['originalFilename'] == 'SCAN.PDF'


def test_store_rejects_oversize_files(media_root, settings):
    settings.UPLOAD_MAX_MB = 1
    big = SimpleUploadedFile('big.pdf', b'0' * (1024 * 1024 + 1))
    with pytest.raises(InvalidArgument):
        storage.store(big, 'hospital_reports', PDF_ONLY)


def test_backend_errors_become_storage_failure(media_root, monkeypatch):
    def broken_save(name, content, max_length=None):
        raise OSError('disk full')

    monkeypatch.setattr(default_storage, 'save', broken_save)
    with pytest.raises(StorageFailure):
        storage.store(SimpleUploadedFile('a.pdf', b'x'), 'hospital_reports', PDF_ONLY)


def test_remove_deletes_and_tolerates_missing(media_root):
    descriptor = storage.store(SimpleUploadedFile('a.pdf', b'x'), 'hospital_reports', PDF_ONLY)
    storage.remove(descriptor['storageId'])
    assert not (media_root / descriptor['storageId']).exists()
    storage.remove(descriptor['storageId'])
    storage.remove('')
