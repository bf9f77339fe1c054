def scope_queryset(queryset, scope, org_field='organization', branch_field='branch', ordering=None):
    """
    Restrict `queryset` to the caller's organization, and to the caller's
    branch when the caller has one.

    A scope without an organization yields an empty queryset and no query is
    run. Results are newest first unless `ordering` is given.
    """
    if not scope.org_id:
        return queryset.none()

    filters = {org_field: scope.org_id}
    if scope.branch_id:
        filters[branch_field] = scope.branch_id

    queryset = queryset.filter(**filters)
    if ordering is None:
        ordering = ['-created_at']
    elif isinstance(ordering, str):
        ordering = [ordering]
    return queryset.order_by(*ordering)
