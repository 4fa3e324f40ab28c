from django.db import models


class Household(models.Model):
    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class SystemLog(models.Model):
    LEVEL_ERROR = "ERRO"
    LEVEL_WARNING = "AVISO"
    LEVEL_INFO = "INFO"
    SOURCE_BACKEND = "BACKEND"
    SOURCE_JOB = "JOB"

    LEVEL_CHOICES = [
        (LEVEL_ERROR, "Erro"),
        (LEVEL_WARNING, "Aviso"),
        (LEVEL_INFO, "Info"),
    ]

    SOURCE_CHOICES = [
        (SOURCE_BACKEND, "Backend"),
        (SOURCE_JOB, "Rotina"),
    ]

    household = models.ForeignKey(
        Household,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="system_logs",
    )
    level = models.CharField(max_length=10, choices=LEVEL_CHOICES, default=LEVEL_ERROR)
    source = models.CharField(max_length=10, choices=SOURCE_CHOICES)
    message = models.CharField(max_length=255)
    details = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    is_resolved = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.get_level_display()} - {self.message}"
