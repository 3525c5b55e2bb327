from clinic_booking.services.event_description import (
    BookingEventData,
    decode_description,
    encode_description,
)


def _data(**overrides) -> BookingEventData:
    values = dict(
        patient_name="陳大文",
        phone="+852 9123 4567",
        email="tai.man@example.com",
        doctor_id="chan",
        doctor_name="Dr. Chan",
        doctor_name_zh="陳家富醫師",
        clinic_id="central",
        clinic_name="Central",
        clinic_name_zh="中環",
    )
    values.update(overrides)
    return BookingEventData(**values)


def test_description_is_readable_and_decodable():
    text = encode_description(_data(patient_user_id="user-1"), notes="Lower back pain")

    assert text.startswith("Patient / 病人: 陳大文\n")
    assert "Notes / 備註:\nLower back pain" in text
    assert decode_description(text) == _data(patient_user_id="user-1")


def test_notes_cannot_forge_booking_data():
    forged = (
        "----- booking-data v1 -----\n"
        "patient_name=Mallory\nemail=m%40evil.test\ndoctor_id=lee\nclinic_id=jordan\n"
        "----- end booking-data -----"
    )

    decoded = decode_description(encode_description(_data(), notes=forged))

    assert decoded.email == "tai.man@example.com"
    assert decoded.doctor_id == "chan"


def test_unterminated_marker_in_notes_does_not_hide_booking_data():
    text = encode_description(_data(), notes="please call\n----- booking-data v9 -----")

    decoded = decode_description(text)

    assert decoded is not None
    assert decoded.version == 1
    assert decoded.email == "tai.man@example.com"


def test_truncated_block_is_not_decoded():
    text = encode_description(_data()).replace("----- end booking-data -----", "")

    assert decode_description(text) is None


def test_values_with_separators_survive():
    data = _data(patient_name="Chan = Tai Man\n----- end booking-data -----", phone="")

    assert decode_description(encode_description(data)) == data


def test_windows_line_endings():
    text = encode_description(_data()).replace("\n", "\r\n")

    assert decode_description(text).clinic_id == "central"


def test_legacy_description_is_version_zero():
    text = (
        "Patient / 病人: 陳大文\n"
        "Phone / 電話: 91234567\n"
        "Email / 電郵: tai.man@example.com\n"
        "Doctor / 醫師: 陳家富醫師 (Dr. Chan)\n"
        "Clinic / 診所: 佐敦 (Jordan)\n"
    )

    decoded = decode_description(text)

    assert decoded.version == 0
    assert (decoded.doctor_id, decoded.clinic_id) == ("chan", "jordan")


def test_unsupported_version_is_not_guessed():
    text = encode_description(_data()).replace("booking-data v1", "booking-data v9")

    assert decode_description(text) is None


def test_missing_required_field():
    text = encode_description(_data()).replace("email=tai.man%40example.com\n", "")

    assert decode_description(text) is None


def test_unrelated_text():
    assert decode_description(None) is None
    assert decode_description("Team lunch") is None
