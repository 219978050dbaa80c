from django.db import models


class User(models.Model):
    name = models.CharField(max_length=50)
    rated_recipes = models.ManyToManyField(
        "Recipe",
        through="Rate",
        related_name="raters",
    )

    class Meta:
        ordering = ["pk"]


class Recipe(models.Model):
    name = models.CharField(max_length=50)
    owner = models.ForeignKey(
        User,
        null=True,
        blank=True,
        related_name="recipes",
        on_delete=models.CASCADE,
    )


class Rate(models.Model):
    user = models.ForeignKey(User, related_name="rates", on_delete=models.CASCADE)
    recipe = models.ForeignKey(Recipe, related_name="rates", on_delete=models.CASCADE)
    value = models.IntegerField()
