"""fastscaler: reactive autoscaler for container services.

Runs one control loop per configured service that:
 - scrapes the "Active connections:" count from a status page
 - doubles the orchestrator desired count when the count passes a threshold
 - posts a webhook notification about the scale-out
 - pauses checks for a fixed grace period afterwards

The implementation is intentionally small so it can be audited and explained.
"""

__version__ = "0.1.0"
