"""
Client-side state layer for the bookmarks service.

Holds the session store, the HTTP gateway client, the filter predicate, the
list reconciler that applies live-feed events, and the presentation
components (add form, bookmark card, bookmark page) built on top of them.
"""
