from campus_events.realtime.reconciler import Reconciler
from campus_events.realtime.views import DeltaView, LiveView

__all__ = ["Reconciler", "LiveView", "DeltaView"]
