"""
FleetAPI module tests.

Host listing uses page-number pagination, so the host tests cover:
- Single page and multiple page responses
- Empty result sets (first page empty)
- Team scoping of the page parameters
- Errors mid-pagination
- API response structure validation
"""
