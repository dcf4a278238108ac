"""
Campus Event Feed

Aggregates event listings for the campus food feed:
- Fetching events from the central events API, a partner API and three
  student-association websites
- Normalizing every source into one canonical event record
- Filtering by upcoming time window and by food-related keywords

Target: ETH Zurich and its student associations
Focus: free events with food and refreshments
"""

__version__ = "1.0.0"
