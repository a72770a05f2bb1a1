"""drand beacon components."""

from beacon_relay.beacon.clock import RoundClock
from beacon_relay.beacon.drand import DrandBeaconSource

__all__ = ["RoundClock", "DrandBeaconSource"]
