"""Speaker-attributed statement extraction from labeled transcripts."""

import logging

from models import ExtractedContent


logger = logging.getLogger(__name__)

LABEL_SEPARATOR = ":"


class ContentExtractor:
    """
    Splits a "Speaker: text" transcript into patient and provider statements.

    Lines without a separator or without a recognizable label are ignored.
    """

    patient_labels: tuple[str, ...] = ("patient",)
    provider_labels: tuple[str, ...] = ("doctor", "provider")

    def extract(self, transcript: str) -> ExtractedContent:
        patient_statements: list[str] = []
        doctor_statements: list[str] = []

        for line in (transcript or "").split("\n"):
            line = line.strip()
            if LABEL_SEPARATOR not in line:
                continue

            speaker, statement = line.split(LABEL_SEPARATOR, 1)
            speaker = speaker.lower()
            statement = statement.strip()

            if any(label in speaker for label in self.patient_labels):
                patient_statements.append(statement)
            elif any(label in speaker for label in self.provider_labels):
                doctor_statements.append(statement)

        logger.debug(
            f"Extracted {len(patient_statements)} patient and "
            f"{len(doctor_statements)} provider statements"
        )

        return ExtractedContent(
            patient_statements=patient_statements,
            doctor_statements=doctor_statements,
        )
