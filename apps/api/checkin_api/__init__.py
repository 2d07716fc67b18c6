"""Check-in tracking API: passwordless sign-in and child-scoped check-ins."""
