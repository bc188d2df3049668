"""
Use Cases

Organized by domain folder:
- auth/: Login, refresh, logout and single-use credential flows
- sessions/: Session listing, revocation and pruning
- two_factor/: Second factor enrollment and removal

Import from subdirectories.
"""
