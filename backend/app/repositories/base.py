"""
Repository Base.
Operaciones comunes sobre un modelo SQLModel.
"""
from typing import TypeVar, Generic, Optional, Type
from sqlmodel import Session, select, func

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Repository base genérico.

    Uso:
        class CirugiaRepository(BaseRepository[Cirugia]):
            def __init__(self, session: Session):
                super().__init__(session, Cirugia)
    """

    def __init__(self, session: Session, model: Type[T]):
        self.session = session
        self.model = model

    def obtener_por_id(self, id: str) -> Optional[T]:
        """
        Obtiene un registro por ID.

        Args:
            id: ID del registro

        Returns:
            El registro o None si no existe
        """
        return self.session.get(self.model, id)

    def guardar(self, obj: T) -> T:
        """Persiste los cambios del registro y lo recarga."""
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def eliminar(self, obj: T) -> None:
        self.session.delete(obj)
        self.session.commit()

    def contar(self) -> int:
        result = self.session.exec(
            select(func.count()).select_from(self.model)
        ).first()
        return result or 0
