from prometheus_client import Counter, Gauge, Histogram


class BookingSessionMetrics:
    """
    Booking Session Core Metrics Collector

    Tracks wizard progression, coupon outcomes and the payment handshake.
    paid_but_unrecorded is the reconciliation alert signal: every increment is money
    captured without a booking record.
    """

    def __init__(self):
        # ========== Wizard Metrics ==========
        self.step_transitions = Counter(
            'booking_step_transitions_total',
            'Step sequencer transitions',
            ['from_step', 'to_step', 'result'],  # result: ok/invalid
        )

        self.active_flows = Gauge(
            'booking_active_flows',
            'Booking flows currently held in memory',
        )

        # ========== Coupon Metrics ==========
        self.coupon_outcomes = Counter(
            'booking_coupon_outcomes_total',
            'Coupon apply attempts by outcome',
            ['outcome'],  # applied/rejected/local_error
        )

        # ========== Payment Metrics ==========
        self.payment_attempts = Counter(
            'booking_payment_attempts_total',
            'Payment attempts by terminal state',
            ['state'],
        )

        self.paid_but_unrecorded = Counter(
            'booking_paid_but_unrecorded_total',
            'Verified payments whose booking creation failed',
        )

        # ========== Backend Metrics ==========
        self.backend_call_duration = Histogram(
            'booking_backend_call_duration_seconds',
            'Booking backend call duration',
            ['operation', 'result'],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
        )

    # ========== Helper Methods ==========

    def record_step_transition(self, *, from_step: int, to_step: int, result: str) -> None:
        self.step_transitions.labels(from_step=from_step, to_step=to_step, result=result).inc()

    def record_coupon_outcome(self, *, outcome: str) -> None:
        self.coupon_outcomes.labels(outcome=outcome).inc()

    def record_payment_attempt(self, *, state: str) -> None:
        self.payment_attempts.labels(state=state).inc()

    def record_paid_but_unrecorded(self) -> None:
        self.paid_but_unrecorded.inc()

    def record_backend_call(self, *, operation: str, result: str, duration: float) -> None:
        self.backend_call_duration.labels(operation=operation, result=result).observe(duration)


# Global metrics instance
metrics = BookingSessionMetrics()
