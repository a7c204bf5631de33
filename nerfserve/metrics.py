"""Prometheus metrics for scene submission and artifact delivery."""

from prometheus_client import Counter

scene_submissions_total = Counter(
    "nerfserve_scene_submissions_total",
    "Scene submissions by outcome",
    ["outcome"]
)

# Submissions that failed after at least one step had committed
scene_submissions_partial_total = Counter(
    "nerfserve_scene_submissions_partial_total",
    "Submissions left partially committed, by last committed step",
    ["last_step"]
)

resource_bytes_served_total = Counter(
    "nerfserve_resource_bytes_served_total",
    "Artifact bytes scheduled for streaming",
    ["output_type"]
)
