class OwnerAdminMixin:
    """
    Enforce per-user isolation in Django admin.
    Staff users see and edit only their own rows;
    superusers see everything.
    """

    def _has_owner(self, model):
        return any(f.name == "owner" for f in model._meta.get_fields())

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        # if super returned None, return an empty queryset instead
        if qs is None:
            return self.model.objects.none()

        # If superuser, show everything;
        # otherwise restrict to the requesting user's rows
        if request.user.is_superuser or not self._has_owner(self.model):
            return qs
        return qs.filter(owner=request.user)

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        """
        Restrict foreignkey dropdowns to the requesting user's rows.
        Example: the client of a project, the project of a time entry.
        """
        if not request.user.is_superuser:
            # owner itself: only yourself
            if db_field.name == "owner":
                kwargs["queryset"] = db_field.related_model.objects.filter(
                    pk=request.user.pk
                )
                return super().formfield_for_foreignkey(db_field, request, **kwargs)

            rel_model = getattr(db_field, "related_model", None)
            if rel_model is not None and self._has_owner(rel_model):
                kwargs["queryset"] = rel_model.objects.filter(owner=request.user)

        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def save_model(self, request, obj, form, change):
        # Ensure object is always owned by the editor on save (unless superuser)
        if not request.user.is_superuser and self._has_owner(type(obj)):
            obj.owner = request.user
        super().save_model(request, obj, form, change)
