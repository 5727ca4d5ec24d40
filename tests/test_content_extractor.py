"""Tests for speaker statement extraction (core/content_extractor.py)."""

from core.content_extractor import ContentExtractor
from tests.conftest import HEADACHE_TRANSCRIPT, VITALS_TRANSCRIPT


def test_extracts_patient_and_doctor_statements():
    extracted = ContentExtractor().extract(HEADACHE_TRANSCRIPT)
    assert extracted.patient_statements == [
        "I've had a headache for three days.",
        "No, just the headache.",
    ]
    assert extracted.doctor_statements == ["Any nausea or vision changes?"]


def test_provider_label_counts_as_doctor():
    extracted = ContentExtractor().extract("Provider: Take this twice daily.")
    assert extracted.doctor_statements == ["Take this twice daily."]
    assert extracted.patient_statements == []


def test_labels_are_case_insensitive_and_may_be_decorated():
    transcript = "PATIENT (John): My knee hurts\nDr. Smith, Doctor: Since when?"
    extracted = ContentExtractor().extract(transcript)
    assert extracted.patient_statements == ["My knee hurts"]
    assert extracted.doctor_statements == ["Since when?"]


def test_splits_only_on_first_separator():
    extracted = ContentExtractor().extract("Doctor: Come back at 10:30 tomorrow")
    assert extracted.doctor_statements == ["Come back at 10:30 tomorrow"]


def test_unlabeled_and_unknown_lines_ignored():
    transcript = "Just some notes\nNurse: Vitals taken\n\n   \nPatient:   fine   "
    extracted = ContentExtractor().extract(transcript)
    assert extracted.patient_statements == ["fine"]
    assert extracted.doctor_statements == []


def test_unlabeled_transcript_is_empty():
    extracted = ContentExtractor().extract("I have had a cough for a week.")
    assert extracted.is_empty


def test_serializes_with_camel_case_keys():
    extracted = ContentExtractor().extract(HEADACHE_TRANSCRIPT)
    data = extracted.model_dump(by_alias=True)
    assert set(data) == {"patientStatements", "doctorStatements"}


def test_chest_pain_consultation():
    extracted = ContentExtractor().extract(VITALS_TRANSCRIPT)
    assert extracted.patient_statements == ["I have severe chest pain."]
    assert extracted.doctor_statements == ["Let's check your vitals."]


def test_extraction_is_repeatable():
    extractor = ContentExtractor()
    assert extractor.extract(VITALS_TRANSCRIPT) == extractor.extract(VITALS_TRANSCRIPT)
