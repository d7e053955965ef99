import pytest

from bookdesk.constants.appointment_status import (
    APPOINTMENT_STATUS_VALUES,
    AppointmentStatus,
    get_appointment_status_label,
    is_valid_appointment_status,
    normalize_appointment_status,
    require_appointment_status,
)
from bookdesk.utils.errors import ValidationError


@pytest.mark.appointments
class TestAppointmentStatus:
    def test_status_values(self):
        assert APPOINTMENT_STATUS_VALUES == [0, 1, 2, 3, 4, 5]
        assert AppointmentStatus.COMPLETED == 3

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("pending", 0),
            ("Confirmed", 1),
            ("in progress", 2),
            ("In-Progress", 2),
            ("in_progress", 2),
            ("INPROGRESS", 2),
            ("completed", 3),
            ("canceled", 4),
            ("Cancelled", 4),
            ("no show", 5),
            ("no-show", 5),
            ("NO_SHOW", 5),
            ("noshow", 5),
            ("3", 3),
            (" 1 ", 1),
            (0, 0),
            (5, 5),
        ],
    )
    def test_normalize_accepted_forms(self, value, expected):
        status = normalize_appointment_status(value)
        assert status == expected
        # normalizing a normalized value changes nothing
        assert normalize_appointment_status(int(status)) == status

    @pytest.mark.parametrize("value", ["done", "", "   ", "6", "-1", None, 6, -1, True, False, 2.0, []])
    def test_normalize_rejects_unknown(self, value):
        assert normalize_appointment_status(value) is None

    @pytest.mark.parametrize("value", [0, 1, 2, 3, 4, 5, "0", "5", " 2 "])
    def test_is_valid(self, value):
        assert is_valid_appointment_status(value) is True

    @pytest.mark.parametrize("value", [6, -1, "6", "pending", None, True, 1.5])
    def test_is_not_valid(self, value):
        assert is_valid_appointment_status(value) is False

    def test_labels(self):
        assert get_appointment_status_label(0) == "Pending"
        assert get_appointment_status_label(2) == "In Progress"
        assert get_appointment_status_label("no-show") == "No Show"
        assert get_appointment_status_label(99) == "Unknown"
        assert get_appointment_status_label(None) == "Unknown"

    def test_require_raises_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            require_appointment_status("bogus")

        assert exc_info.value.status_code == 400
        assert exc_info.value.errors[0]["field"] == "status"

    def test_require_returns_enum(self):
        assert require_appointment_status("Completed") is AppointmentStatus.COMPLETED
