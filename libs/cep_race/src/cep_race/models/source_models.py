from typing import Optional, Union

from pydantic import BaseModel

# Response bodies as documented by each provider.
# Only the fields mapped into NormalizedResult are declared; the rest are ignored.


class BrasilAPIResponse(BaseModel):
    # SCALARS
    cep: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    neighborhood: Optional[str] = None
    street: Optional[str] = None
    service: Optional[str] = None


class ViaCEPResponse(BaseModel):
    # SCALARS
    cep: Optional[str] = None
    logradouro: Optional[str] = None
    complemento: Optional[str] = None
    bairro: Optional[str] = None
    localidade: Optional[str] = None
    uf: Optional[str] = None
    # ViaCEP answers 200 with {"erro": true} (or "true") for unknown CEPs
    erro: Optional[Union[bool, str]] = None
