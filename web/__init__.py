"""web/ -- Server-rendered HTML routes, templates, and static assets."""
