from duobudget.coordinator.coordinator import RecordSyncCoordinator, RenderCallback, ResyncCallback
from duobudget.coordinator.origin import NeverRemoteDetector, RemoteOriginDetector, TimestampAgeDetector

__all__ = [
    "NeverRemoteDetector",
    "RecordSyncCoordinator",
    "RemoteOriginDetector",
    "RenderCallback",
    "ResyncCallback",
    "TimestampAgeDetector",
]
