"""
Certificate eligibility. Issuance and the certificate file itself are owned by
the backend; this only decides what status to show for a course.
"""

from typing import Iterable, Optional

from coursehub.schemas.progress_schemas import CertificateCounts, CertificateEntry, CertificateStatus, EnrollmentRecord


def status_for(enrollment: Optional[EnrollmentRecord]) -> Optional[CertificateStatus]:
    """issued iff completed, pending iff purchased and not completed, None (not applicable) otherwise."""
    if enrollment is None or not enrollment.purchased:
        return None
    if enrollment.is_completed:
        return CertificateStatus.ISSUED
    return CertificateStatus.PENDING


def certificate_list(enrollments: Iterable[EnrollmentRecord]) -> list[CertificateEntry]:
    entries: list[CertificateEntry] = []
    for record in enrollments:
        status = status_for(record)
        if status is None:
            continue
        entries.append(
            CertificateEntry(
                course_id=record.course_id,
                course_title=record.title,
                status=status,
                progress_percent=record.progress_percent,
            )
        )
    return entries


def certificate_counts(entries: Iterable[CertificateEntry]) -> CertificateCounts:
    counts = CertificateCounts()
    for entry in entries:
        if entry.status == CertificateStatus.ISSUED:
            counts.issued += 1
        else:
            counts.pending += 1
    return counts
