"""
NoteFlow Backend — Services Layer
===================================

What:  Business logic between routes (HTTP) and the database.
How:   Module-level service singletons whose methods take the request's
       AsyncSession first; routes call them and wrap results in ApiResponse.

Service Inventory:
    - access_policy: pure content-access decision and purchase guards
    - UserService / AuthService: accounts, password hashing, token issue
    - NoteService: note CRUD, listing with filters, detail with access decision
    - PaymentService: purchase workflow, history, creator earnings
    - CommentService: comments, ratings, soft deletion
    - ToggleService (likes) / BookmarkService: idempotent engagement toggles
"""
