"""Custom metrics for the restaurant directory."""

from opentelemetry import metrics

meter = metrics.get_meter("restaurant-directory")

menu_item_mutation_counter = meter.create_counter(
    name="menu_item_mutations_total",
    description="Menu item additions, updates and removals that were persisted",
    unit="1",
)

authorization_denial_counter = meter.create_counter(
    name="authorization_denials_total",
    description="Mutations rejected because the caller does not own the restaurant",
    unit="1",
)

image_upload_failure_counter = meter.create_counter(
    name="image_upload_failures_total",
    description="Image uploads that failed in object storage",
    unit="1",
)

image_upload_duration_histogram = meter.create_histogram(
    name="image_upload_duration_seconds",
    description="Duration of successful image uploads",
    unit="s",
)


def record_menu_item_mutation(operation: str) -> None:
    """Record a persisted menu item change.

    Args:
        operation: One of "add", "update", "remove"
    """
    menu_item_mutation_counter.add(1, {"operation": operation})


def record_authorization_denial(operation: str) -> None:
    """Record a rejected mutation.

    Args:
        operation: The operation that was denied
    """
    authorization_denial_counter.add(1, {"operation": operation})


def record_image_upload_failure(error_type: str) -> None:
    """Record a failed image upload.

    Args:
        error_type: Class name of the storage error
    """
    image_upload_failure_counter.add(1, {"error_type": error_type})


def record_image_upload_duration(duration_seconds: float) -> None:
    """Record how long a successful upload took.

    Args:
        duration_seconds: Duration in seconds
    """
    image_upload_duration_histogram.record(duration_seconds)
