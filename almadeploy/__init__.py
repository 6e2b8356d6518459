"""almadeploy - provision a Spring Boot + JavaScript stack on AlmaLinux."""

__version__ = "1.0.0"
