"""Calendar event description codec.

Staff read the top of the description in the calendar UI; the engine reads
only the delimited data block at the bottom::

    Patient / 病人: 陳大文
    ...
    ----- booking-data v1 -----
    patient_name=%E9%99%B3%E5%A4%A7%E6%96%87
    email=tai.man%40example.com
    ----- end booking-data -----

Values in the block are percent-encoded, so free text (notes, names) can never
break out of it. Descriptions written before the block existed are decoded
from their labelled lines as version 0.
"""
import re
from dataclasses import dataclass, fields
from urllib.parse import quote, unquote

from clinic_booking.core.clinics import CLINICS, DOCTORS, get_clinic_address

DESCRIPTION_VERSION = 1
SUPPORTED_VERSIONS = frozenset({1})
BLOCK_START = "----- booking-data v{version} -----"
BLOCK_END = "----- end booking-data -----"

_START_RE = re.compile(r"^----- booking-data v(?P<version>\d+) -----$", re.MULTILINE)
_BODY_RE = re.compile(r"\n(?P<body>.*?)\n?^----- end booking-data -----$", re.MULTILINE | re.DOTALL)
_REQUIRED = ("patient_name", "email", "doctor_id", "clinic_id")


@dataclass
class BookingEventData:
    patient_name: str
    phone: str
    email: str
    doctor_id: str
    doctor_name: str
    doctor_name_zh: str
    clinic_id: str
    clinic_name: str
    clinic_name_zh: str
    patient_user_id: str | None = None
    version: int = DESCRIPTION_VERSION

    @property
    def clinic_address(self) -> str:
        return get_clinic_address(self.clinic_id)


_KEYS = tuple(f.name for f in fields(BookingEventData) if f.name != "version")


def _human_lines(data: BookingEventData, notes: str | None) -> list[str]:
    lines = [
        f"Patient / 病人: {data.patient_name}",
        f"Phone / 電話: {data.phone}",
    ]
    if data.email:
        lines.append(f"Email / 電郵: {data.email}")
    lines.append(f"Doctor / 醫師: {data.doctor_name_zh} ({data.doctor_name})")
    lines.append(f"Clinic / 診所: {data.clinic_name_zh} ({data.clinic_name})")
    if notes:
        lines.append(f"\nNotes / 備註:\n{notes}")
    return lines


def encode_description(data: BookingEventData, notes: str | None = None) -> str:
    block = [BLOCK_START.format(version=DESCRIPTION_VERSION)]
    for key in _KEYS:
        value = getattr(data, key)
        if value is None:
            continue
        block.append(f"{key}={quote(str(value), safe='')}")
    block.append(BLOCK_END)
    return "\n".join(_human_lines(data, notes) + [""] + block)


def _from_mapping(values: dict[str, str], version: int) -> BookingEventData | None:
    if any(not values.get(key, "").strip() for key in _REQUIRED):
        return None
    return BookingEventData(
        patient_name=values["patient_name"].strip(),
        phone=values.get("phone", "").strip(),
        email=values["email"].strip(),
        doctor_id=values["doctor_id"].strip(),
        doctor_name=values.get("doctor_name", "").strip(),
        doctor_name_zh=values.get("doctor_name_zh", "").strip(),
        clinic_id=values["clinic_id"].strip(),
        clinic_name=values.get("clinic_name", "").strip(),
        clinic_name_zh=values.get("clinic_name_zh", "").strip(),
        patient_user_id=values.get("patient_user_id") or None,
        version=version,
    )


def _decode_block(version: int, body: str) -> BookingEventData | None:
    if version not in SUPPORTED_VERSIONS:
        return None
    values: dict[str, str] = {}
    for line in body.splitlines():
        key, sep, raw = line.partition("=")
        if not sep or key not in _KEYS:
            continue
        values[key] = unquote(raw)
    return _from_mapping(values, version)


def _label_value(text: str, label: str) -> str:
    match = re.search(rf"^{re.escape(label)}\s*:\s*(.+)$", text, re.MULTILINE)
    return match.group(1).strip() if match else ""


def _decode_legacy(text: str) -> BookingEventData | None:
    doctor = re.search(r"^Doctor / 醫師:\s*(.+?)\s*\((.+?)\)\s*$", text, re.MULTILINE)
    clinic = re.search(r"^Clinic / 診所:\s*(.+?)\s*\((.+?)\)\s*$", text, re.MULTILINE)
    if not doctor or not clinic:
        return None
    doctor_id = next((d.id for d in DOCTORS if d.name_en == doctor.group(2).strip()), "")
    clinic_id = next((c.id for c in CLINICS if c.name_en == clinic.group(2).strip()), "")
    return _from_mapping(
        {
            "patient_name": _label_value(text, "Patient / 病人"),
            "phone": _label_value(text, "Phone / 電話"),
            "email": _label_value(text, "Email / 電郵"),
            "doctor_id": doctor_id,
            "doctor_name": doctor.group(2),
            "doctor_name_zh": doctor.group(1),
            "clinic_id": clinic_id,
            "clinic_name": clinic.group(2),
            "clinic_name_zh": clinic.group(1),
        },
        version=0,
    )


def decode_description(text: str | None) -> BookingEventData | None:
    """Recover booking data from an event description, or None if it has none."""
    if not text:
        return None
    normalized = text.replace("\r\n", "\n")
    # the engine-written block comes after the notes, so its start marker is the
    # last one; encoded values never contain a marker line
    starts = list(_START_RE.finditer(normalized))
    if not starts:
        return _decode_legacy(normalized)
    start = starts[-1]
    body = _BODY_RE.match(normalized, start.end())
    if body is None:
        return None
    return _decode_block(int(start.group("version")), body.group("body"))
