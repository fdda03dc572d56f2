"""
Services Package for Takeaway Bot
=================================

Business logic and infrastructure behind the dialog engine.

Available Services:
-------------------
- **menu**: Menu snapshot providers (static and database backed)
- **order**: Order persistence, codes and error codes
- **pricing**: VAT-inclusive line pricing with decimal rounding
- **throttling**: Pickup slot flooring and capacity checks
- **cancellation**: Cancellation rules and the cancel operation
- **notifier**: Order and kitchen ticket notifications
- **session**: In-memory dialog session store with TTL
"""
