"""Known doctors and clinic locations.

Identifiers here are the closed set accepted by the booking engine; anything
else is rejected before storage is consulted.
"""
from dataclasses import dataclass, field

DOCTOR_IDS = ("chan", "lee", "hon", "chau", "cheung", "leung")
CLINIC_IDS = ("central", "jordan", "tsuenwan", "online")


@dataclass(frozen=True)
class DoctorProfile:
    id: str
    name_zh: str
    name_en: str


@dataclass(frozen=True)
class ClinicProfile:
    id: str
    name_zh: str
    name_en: str
    address: str
    phones: tuple[str, ...] = field(default_factory=tuple)


DOCTORS: tuple[DoctorProfile, ...] = (
    DoctorProfile("chan", "陳家富醫師", "Dr. Chan"),
    DoctorProfile("lee", "李芊霖醫師", "Dr. Lee"),
    DoctorProfile("hon", "韓曉恩醫師", "Dr. Hon"),
    DoctorProfile("chau", "周德健醫師", "Dr. Chau"),
    DoctorProfile("cheung", "張天慧醫師", "Dr. Cheung"),
    DoctorProfile("leung", "梁仲威醫師", "Dr. Leung"),
)

CLINICS: tuple[ClinicProfile, ...] = (
    ClinicProfile(
        "central", "中環", "Central",
        "中環皇后大道中70號卡佛大廈23樓2310室", ("3575 9733", "6733 3234"),
    ),
    ClinicProfile(
        "jordan", "佐敦", "Jordan",
        "九龍佐敦寶靈街6號佐敦中心7樓全層", ("3105 0733", "6733 3801"),
    ),
    ClinicProfile(
        "tsuenwan", "荃灣", "Tsuen Wan",
        "荃灣富麗花園商場A座地下20號舖", ("2698 5422", "6097 7363"),
    ),
    ClinicProfile("online", "網上", "Online", "網上 Zoom / WhatsApp Video"),
)

DOCTOR_BY_ID = {d.id: d for d in DOCTORS}
CLINIC_BY_ID = {c.id: c for c in CLINICS}


def is_doctor_id(value: str | None) -> bool:
    return value in DOCTOR_BY_ID


def is_clinic_id(value: str | None) -> bool:
    return value in CLINIC_BY_ID


def get_doctor(doctor_id: str) -> DoctorProfile | None:
    return DOCTOR_BY_ID.get(doctor_id)


def get_clinic(clinic_id: str) -> ClinicProfile | None:
    return CLINIC_BY_ID.get(clinic_id)


def get_clinic_address(clinic_id: str) -> str:
    clinic = CLINIC_BY_ID.get(clinic_id)
    return clinic.address if clinic else ""
