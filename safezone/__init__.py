"""SafeZone alerts - location hazard and live event alerting."""
