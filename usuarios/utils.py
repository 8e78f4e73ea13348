import json


def datos_request(request):
    """
    Datos enviados en un POST: el cuerpo JSON cuando el cliente envía
    application/json, de lo contrario el formulario.
    """
    if request.content_type == 'application/json':
        try:
            datos = json.loads(request.body or b'{}')
        except ValueError:
            return {}
        return datos if isinstance(datos, dict) else {}
    return request.POST.dict()
