from prometheus_client import Counter, Histogram

# Safety + routing
SAFETY_VERDICTS = Counter(
    "turnguard_safety_verdicts_total", "Safety classifier verdicts", ["safety_policy", "crisis"]
)
ROUTE_DECISIONS = Counter(
    "turnguard_route_decisions_total", "Routing decisions", ["pipeline", "safety_policy"]
)
CRISIS_ROUTES = Counter("turnguard_crisis_routes_total", "Turns routed to the crisis flow")

# Post-processing
POSTPROCESS_VIOLATIONS = Counter(
    "turnguard_postprocess_violations_total", "Quality-gate violations", ["violation"]
)
REWRITE_PASSES = Histogram(
    "turnguard_rewrite_passes", "Rewrite passes per processed draft", buckets=[0, 1, 2, 3, 5, 10]
)
