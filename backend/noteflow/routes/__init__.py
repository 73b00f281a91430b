"""
NoteFlow Backend — API Routes Package
=======================================

What:  HTTP route handlers. Every route lives under /api and answers with
       the `{success, message, data?}` envelope.

Route Inventory:
    - auth.py:       /api/auth        signup, login, logout, current user
    - notes.py:      /api/notes       create, list, detail, update, delete
    - payments.py:   /api/payments    purchase, history, earnings, detail
    - comments.py:   /api/comments    add, list, detail, edit, soft delete, rating
    - likes.py:      /api/likes       toggle, count, status, users, liked notes
    - bookmarks.py:  /api/bookmarks   toggle, my bookmarks, status, count, stats

Routes stay thin: extract input, resolve identity through the security
dependencies, call one service, wrap the result.
"""
