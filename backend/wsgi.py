from merchpos import create_app

app = create_app()
