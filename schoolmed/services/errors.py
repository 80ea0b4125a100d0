class SchedulingError(Exception):
    """Base class for schedule generation failures on a single medication."""


class MedicationNotFoundError(SchedulingError):
    def __init__(self, medication_id):
        super().__init__(f"Student medication not found: {medication_id}")
        self.medication_id = medication_id


class MedicationNotActiveError(SchedulingError):
    def __init__(self, medication_id, status):
        super().__init__(
            f"Schedules can only be generated for ACTIVE medications "
            f"(medication {medication_id} is {getattr(status, 'value', status)})"
        )
        self.medication_id = medication_id
        self.status = status
