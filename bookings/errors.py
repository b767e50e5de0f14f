class LaundryError(Exception):
    code = 'error'
    status_code = 400

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self):
        data = {'error': self.message, 'code': self.code}
        if self.details:
            data['details'] = self.details
        return data


class InvalidSelection(LaundryError):
    code = 'invalid_selection'
    status_code = 400


class CapacityExceeded(LaundryError):
    code = 'capacity_exceeded'
    status_code = 409


class InvalidTransition(LaundryError):
    code = 'invalid_transition'
    status_code = 409


class ConcurrentModification(LaundryError):
    code = 'concurrent_modification'
    status_code = 409


class InvalidState(LaundryError):
    code = 'invalid_state'
    status_code = 409
