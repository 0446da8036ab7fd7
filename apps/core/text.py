import unicodedata

from django.utils.text import slugify


def slugify_pt(value):
    """Slugify stripping Portuguese accents: 'Caderno Ação' -> 'caderno-acao'."""
    normalized = unicodedata.normalize('NFKD', str(value))
    ascii_text = normalized.encode('ascii', 'ignore').decode('ascii')
    return slugify(ascii_text)


def unique_slugify(model, value, exclude_pk=None, field='slug', max_length=255):
    base_slug = slugify_pt(value)[:max_length] or 'item'
    slug = base_slug
    counter = 1
    queryset = model._default_manager.all()
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    while queryset.filter(**{field: slug}).exists():
        suffix = f'-{counter}'
        slug = f'{base_slug[:max_length - len(suffix)]}{suffix}'
        counter += 1
    return slug
