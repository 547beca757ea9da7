from clinicpos import create_app

app = create_app()
