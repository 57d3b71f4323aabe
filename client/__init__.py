"""
Client-side controllers for the entries site.

The browser behaviour (session handling, paginated lists, debounced search
and the compose modal) lives here as plain Python controllers working against
small view objects, so it can be driven and tested without a browser.
"""
