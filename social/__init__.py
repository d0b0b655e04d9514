"""social/ -- Posts, likes, profiles, uploads, and the service layer over them."""
