"""
API routes.

- picks: today's picks, picks by date, game detail
- news: latest, paginated and by-category news
- analytics: summary and performance over a date range
- plans: subscription plan catalogue
- admin: write surface (X-Admin-Token)
"""
