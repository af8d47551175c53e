# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

# None of these are retried.  Whoever called us gets the exception and
# decides whether to try again with something else (a different file,
# different laps, ...).

class TelemetryError(Exception):
    pass

class OutOfRange(TelemetryError):
    pass

class MalformedHeader(TelemetryError):
    pass

class UnknownChannel(TelemetryError):
    def __init__(self, name):
        super().__init__('Missing channel in telemetry file: %s' % name)
        self.name = name

class NoUsableLaps(TelemetryError):
    pass

class InsufficientLapData(TelemetryError):
    pass

class EmptyMesh(TelemetryError):
    pass

class InvalidTrackMapDocument(TelemetryError):
    pass
